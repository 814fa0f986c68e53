'''
Statistics of motif activity and differential accessibility. Motif selection uses
a jackstraw test on the principal components of the scaled deviation scores, and
differential peaks use Welch t-tests between motif high and low cells.
'''

from chrmod.descriptive.jackstraw import jackstraw_motifs, significant_motifs
from chrmod.descriptive.diff import (
    binarize_scores,
    ttest_peaks,
    ttest_peaks_motifs,
    adjust_fdr,
    count_significant,
    significant_peaks,
    fold_change_matrix
)

__all__ = [
    'jackstraw_motifs',
    'significant_motifs',
    'binarize_scores',
    'ttest_peaks',
    'ttest_peaks_motifs',
    'adjust_fdr',
    'count_significant',
    'significant_peaks',
    'fold_change_matrix'
]
