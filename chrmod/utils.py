import re
import numpy as np
import pandas as pd
import scipy.sparse as sp

from chrmod.ansi import error
from chrmod.configuration import default as cfg


def setup_styles(
    font_name = cfg['plotting.font'],
    backend = cfg['backend']
):

    import matplotlib as mpl
    import matplotlib.pyplot as plt

    # mpl.use(backend)
    plt.rcParams['font.family'] = 'sans-serif'
    plt.rcParams['font.sans-serif'] = font_name
    plt.rcParams["ytick.labelright"] = False
    plt.rcParams["ytick.labelleft"] = True

    # export text as fonts, not as paths.
    plt.rcParams['pdf.fonttype'] = 42
    plt.rcParams['ps.fonttype'] = 42

    # do not show too much precision
    np.set_printoptions(precision = 3, floatmode = 'fixed', suppress = True)
    pass


def toarray(x):

    if isinstance(x, (pd.DataFrame, pd.Series, pd.Index)):
        x = x.to_numpy()
    elif sp.issparse(x):
        x = x.toarray()
    elif isinstance(x, np.matrix):
        x = x.A
    elif isinstance(x, list):
        x = np.array(x)
    elif isinstance(x, np.ndarray): pass
    else: error("expected array-like. got {}".format(type(x)))
    return x


def choose_layer(adata, layer = None):
    if layer is None or layer == 'X': return adata.X
    elif layer in adata.layers.keys(): return adata.layers[layer]
    else: error(f'layer `{layer}` does not present in the annotated data.')


def scale(X, axis = 1):
    '''
    Center and scale a dense matrix along the given axis, using the sample
    standard deviation (ddof = 1). ``axis = 1`` standardizes each row across
    columns. Constant vectors yield NaN, as in a plain z-transform.
    '''

    X = np.asarray(toarray(X), dtype = np.float64)
    mean = X.mean(axis = axis, keepdims = True)
    with np.errstate(divide = 'ignore', invalid = 'ignore'):
        sd = X.std(axis = axis, ddof = 1, keepdims = True)
        return (X - mean) / sd


def extract_tf_names(motif_names):
    '''
    Extract the readable TF name from chromVAR style motif identifiers, such as
    ``ENSMUSG00000025902_LINE1_Sox17_D_N1``. Names that do not follow the
    ``<id>_LINE<n>_<tf>_...`` convention are returned as is.
    '''

    names = []
    for x in motif_names:
        fields = str(x).split('_')
        if len(fields) >= 3 and fields[1].startswith('LINE'): names.append(fields[2])
        else: names.append(str(x))
    return names


def parse_peak_names(names):
    '''
    Parse genomic coordinates from peak names in ``chr:start-end`` (or
    ``chr-start-end``) format. Returns a dataframe with chr, start and end.
    '''

    pattern = re.compile(r'^(.+)[:\-](\d+)-(\d+)$')
    rows = []
    for x in names:
        matched = pattern.match(str(x))
        if matched is None: error(f'cannot parse genomic coordinates from peak name `{x}`.')
        rows.append((matched.group(1), int(matched.group(2)), int(matched.group(3))))

    return pd.DataFrame(rows, columns = ['chr', 'start', 'end'], index = list(names))


def get_igraph_from_adjacency(adj):

    import igraph as ig
    adj = sp.triu(sp.csr_matrix(adj)).tocsr()
    vcount = max(adj.shape)
    sources, targets = adj.nonzero()
    edgelist = list(zip(sources.tolist(), targets.tolist()))
    weights = np.ravel(adj[(sources, targets)])
    gr = ig.Graph(n = vcount, edges = edgelist, directed = False, edge_attrs = {"weight": weights})
    return gr


def check_positive(**params):
    for p in params:
        if params[p] <= 0: error("expected {} > 0, got {}".format(p, params[p]))


def check_between(v_min, v_max, **params):
    for p in params:
        if params[p] < v_min or params[p] > v_max:
            error("expected {} between {} and {}, got {}".format(p, v_min, v_max, params[p]))
