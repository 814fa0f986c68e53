import sys

from tqdm import tqdm

SILENT = False


def fore_red() -> None:
    print('\033[31m', end = '')

def fore_yellow() -> None:
    print('\033[33m', end = '')

def fore_cyan() -> None:
    print('\033[36m', end = '')


def ansi_reset() -> None:
    print('\033[0m', end = '')


def format_file_size(size):
    for suffix in ['B', 'KiB', 'MiB', 'GiB', 'TiB']:
        if size < 1024.0 or suffix == 'TiB': break
        size /= 1024.0
    return f"{size:.2f} {suffix}"


def error(text: str, error = None) -> None:
    if SILENT: raise Exception(text) from error
    fore_red()
    print('[error]', end = ' ')
    ansi_reset()
    print(text)

    if error is None: raise Exception(text)
    else: raise Exception(text) from error


def warning(text: str) -> None:
    if SILENT: return
    fore_yellow()
    print('[!]', end = ' ')
    ansi_reset()
    print(text)
    ansi_reset()


def info(text: str) -> None:
    if SILENT: return
    fore_cyan()
    print('[i]', end = ' ')
    ansi_reset()
    print(text)
    ansi_reset()


def dtypemat(dty):
    from numpy import matrix, ndarray
    from scipy.sparse import csr_array, csr_matrix, csc_array, csc_matrix
    from pandas import DataFrame

    classdef = ''
    if isinstance(dty, DataFrame): return 'df'
    elif isinstance(dty, matrix): classdef = 'dense'
    elif isinstance(dty, ndarray): classdef = 'arr'
    elif isinstance(dty, csr_array): classdef = 'csra'
    elif isinstance(dty, csr_matrix): classdef = 'csr'
    elif isinstance(dty, csc_array): classdef = 'csca'
    elif isinstance(dty, csc_matrix): classdef = 'csc'
    else: classdef = str(type(dty))

    return ':'.join([classdef, str(dty.dtype)]) + f' {dty.shape[0]} x {dty.shape[1]}'


progress_styles = {
    'ncols': 80,
    'ascii': '-━',
    'bar_format': '   {bar} {desc:20} {n:5d} / {total:<5d} ({elapsed} < {remaining})',
    'file': sys.stderr
}


class pprog(tqdm):
    def __init__(self, iterable = None, **kwargs):
        kwargs.setdefault('disable', SILENT)
        super().__init__(iterable, **progress_styles, **kwargs)
