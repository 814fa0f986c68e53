
from setuptools import setup, find_packages

setup(
    name                 = 'chrmod',
    version              = '0.1.0',
    description          = 'peak modules of transcription factor motif activity in single cell atac-seq',
    author               = 'chrmod developers',
    license              = 'GPLv3',
    packages             = find_packages(include = ['chrmod', 'chrmod.*']),
    python_requires      = '>= 3.10',
    install_requires     = [
        'anndata',
        'pandas',
        'numpy',
        'scipy',
        'scikit-learn',
        'statsmodels',
        'matplotlib',
        'seaborn',
        'igraph',
        'fastcluster',
        'pynndescent',
        'pyfastx',
        'joblib',
        'tqdm',
        'rich',
        'psutil',
        'click'
    ],
    extras_require       = {
        'test': ['pytest']
    },
    entry_points         = {
        'console_scripts': ['chrmod = chrmod.cli:cli']
    },
    include_package_data = False,
    zip_safe             = False
)
