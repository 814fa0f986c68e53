import os
import numpy as np

from chrmod.ansi import error, info, pprog
from chrmod.utils import parse_peak_names


def peak_coordinates(adata):
    ''' Genomic coordinates of the peaks, from ``var`` or parsed from peak names. '''

    if all(x in adata.var.columns for x in ['chr', 'start', 'end']):
        coords = adata.var[['chr', 'start', 'end']].copy()
        coords['start'] = coords['start'].astype(int)
        coords['end'] = coords['end'].astype(int)
        return coords
    
    return parse_peak_names(adata.var_names)


def gc_content(adata, fasta, key_added = 'gc'):
    '''
    Compute the GC fraction of each peak from the reference genome. Peak starts are
    taken as 0-based and ends as exclusive (BED convention). Peaks of only unknown
    bases are given a GC fraction of 0.5.
    '''

    if fasta is None or not os.path.exists(fasta):
        error(f'reference genome `{fasta}` does not exist.')

    import pyfastx
    fa = pyfastx.Fasta(fasta)
    coords = peak_coordinates(adata)
    chromosomes = set(fa.keys())

    gc = np.full(adata.n_vars, 0.5)
    for i, (chr, start, end) in enumerate(pprog(
        zip(coords['chr'], coords['start'], coords['end']),
        total = adata.n_vars, desc = 'fetching peaks'
    )):
        if chr not in chromosomes: error(f'chromosome `{chr}` is not in the reference genome.')
        seq = fa.fetch(chr, (int(start) + 1, int(end))).upper()
        n_known = len(seq) - seq.count('N')
        if n_known > 0: gc[i] = (seq.count('C') + seq.count('G')) / n_known

    adata.var[key_added] = gc
    info(f'computed gc content of {adata.n_vars} peaks.')
    return adata
