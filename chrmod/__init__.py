import os
os.environ['OPENBLAS_NUM_THREADS'] = '1'
os.environ['GOTO_NUM_THREADS'] = '1'
os.environ['OMP_NUM_THREADS'] = '1'

import importlib.metadata

from chrmod.configuration import default as config
from chrmod.configuration import default_finders
from chrmod.ansi import info

# load configuration
for finder in default_finders:
    if os.path.exists(finder):
        info(f'load configuration from {finder}')
        config.load(finder)
        break

# core method exports
from chrmod.utils import setup_styles
from chrmod.reader import read_counts, read_deviations, read_cells, subset_cells
from chrmod.pipeline import modules, run, load_modules

setup_styles()


def version(): 
    import sys
    import platform

    ver_string = importlib.metadata.version("chrmod")
    MAJOR, MINOR, REVISION = [int(x) for x in ver_string.split('.')]
    info(f'chrmod {MAJOR}.{MINOR}.{REVISION}')
    info(f'os: {os.name} ({sys.platform})  platform version: {platform.release()}')
    info(f'current working directory: {os.getcwd()}')
    memory()
    return (MAJOR, MINOR, REVISION)


def memory():
    import psutil
    from chrmod.ansi import format_file_size
    meminfo = psutil.Process().memory_info()
    info(f'resident memory: {format_file_size(meminfo.rss)}')
    info(f'virtual memory: {format_file_size(meminfo.vms)}')


__all__ = [
    'config',
    'setup_styles',
    'read_counts',
    'read_deviations',
    'read_cells',
    'subset_cells',
    'modules',
    'run',
    'load_modules',
    'version',
    'memory'
]
