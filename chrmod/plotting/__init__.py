from chrmod.plotting.modules import (
    significant_peaks_per_motif,
    peaks_per_module,
    module_heatmap
)

__all__ = [
    'significant_peaks_per_motif',
    'peaks_per_module',
    'module_heatmap'
]
