from chrmod.clustering.louvain import louvain
from chrmod.clustering.seriation import serial_order, correlation_distance
from chrmod.clustering.modules import (
    define_modules,
    module_sizes,
    order_modules,
    annotation_matrix
)

__all__ = [
    'louvain',
    'serial_order',
    'correlation_distance',
    'define_modules',
    'module_sizes',
    'order_modules',
    'annotation_matrix'
]
