'''
Scoring single cells for peak modules, the way chromVAR scores motifs: the gc
content of peaks is fetched from the reference genome, background peaks are
matched on gc content and read depth, and bias corrected deviations are computed
for each module annotation.
'''

from chrmod.peaks.sequence import gc_content, peak_coordinates
from chrmod.peaks.background import background_peaks
from chrmod.peaks.deviations import compute_deviations

__all__ = [
    'gc_content',
    'peak_coordinates',
    'background_peaks',
    'compute_deviations'
]
