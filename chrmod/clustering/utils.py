import random
import numpy as np
from contextlib import contextmanager
from sklearn.utils import check_random_state


class igraph_rng:

    def __init__(self, random_state: int | np.random.RandomState = 0) -> None:
        self._rng = check_random_state(random_state)

    def getrandbits(self, k: int) -> int:
        nbytes = (k + 7) // 8
        return int.from_bytes(self._rng.bytes(nbytes), 'little') & ((1 << k) - 1)

    def randint(self, a: int, b: int) -> int:
        return int(self._rng.randint(a, b + 1))

    def __getattr__(self, attr: str):
        return getattr(self._rng, "normal" if attr == "gauss" else attr)
    

@contextmanager
def set_igraph_random_state(random_state):

    import igraph
    rng = igraph_rng(random_state)
    try: igraph.set_random_number_generator(rng); yield None
    finally: igraph.set_random_number_generator(random)


def relabel_by_appearance(labels, start = 1):
    '''
    Relabel integer cluster ids by the order of their first appearance, starting
    from ``start``.
    '''

    mapping = {}
    for x in labels:
        if x not in mapping: mapping[x] = len(mapping) + start
    return np.array([mapping[x] for x in labels], dtype = np.int64)
