import numpy as np
from sklearn.decomposition import PCA

from chrmod.ansi import warning


def pca(S, n_comp = 20, random_state = 42, svd_solver = 'full'):
    '''
    Run PCA on the scaled matrix S, treating rows as observations (cells) and columns
    as features (motifs). The number of components is capped by the matrix rank.

    Returns
    ------------
    
    A tuple of 4:

    *   The transformed embedding by the PCA embedder. (n_cells, n_comp)
    *   The feature loadings. (n_features, n_comp)
    *   Percentage of explained variance
    *   The PCA embedder
    '''

    max_comp = min(S.shape)
    if n_comp > max_comp:
        warning(f'n_comp too large for a {S.shape[0]} x {S.shape[1]} matrix, '
                f'adjusting to `n_comp = {max_comp}`')
        n_comp = max_comp

    embedder = PCA(
        n_components = n_comp,
        random_state = random_state,
        svd_solver = svd_solver
    )

    embedding = embedder.fit_transform(np.asarray(S, dtype = np.float64))
    return (
        embedding,
        embedder.components_.T,
        embedder.explained_variance_ratio_,
        embedder
    )
