from chrmod.reader.inputs import read_counts, read_deviations, read_cells, subset_cells

__all__ = [
    'read_counts',
    'read_deviations',
    'read_cells',
    'subset_cells'
]
