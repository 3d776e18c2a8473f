import math

import torch


def svd_lowrank(mat: torch.Tensor, q: int):
    """
    SVD lowrank
    mat: (n, m), n data, m features
    q: int
    return: (n, q), (q,), (m, q)
    """
    dtype = mat.dtype
    with torch.autocast(device_type=mat.device.type, enabled=False):
        if dtype == torch.float16 or dtype == torch.bfloat16:
            mat = mat.float()  # svd_lowrank does not support float16

        u, s, v = torch.svd_lowrank(mat, q=min(q + 10, *mat.shape))

    u = u[:, :q].to(dtype)
    s = s[:q].to(dtype)
    v = v[:, :q].to(dtype)
    return u, s, v


def pca_lowrank(mat, q):
    """
    PCA lowrank
    mat: (n, m), n data, m features
    q: int
    return: (n, q)
    """
    mat = mat - mat.mean(0)
    u, s, v = svd_lowrank(mat, q)
    _n = mat.shape[0]
    s /= math.sqrt(_n)
    return u @ torch.diag(s)


def correct_rotation(eigvec):
    # correct the random rotation (flipping sign) of eigenvectors
    with torch.no_grad():
        ones = torch.ones(eigvec.shape[0], device=eigvec.device, dtype=eigvec.dtype)
        s = (ones[None, :] @ eigvec).sign()
        s[s == 0] = 1
    eigvec = eigvec * s
    return eigvec


def orthogonalize(w: torch.Tensor, basis: torch.Tensor, n_pass: int = 2):
    """Remove the components of ``w`` along the orthonormal columns of ``basis``.

    Classical Gram-Schmidt repeated ``n_pass`` times, twice is enough to keep
    orthogonality at working precision.

    Args:
        w (torch.Tensor): vectors to orthogonalize, shape (n,) or (n, j)
        basis (torch.Tensor): orthonormal columns, shape (n, m)
    Returns:
        torch.Tensor: orthogonalized vectors, same shape as w
    """
    if basis is None or basis.shape[1] == 0:
        return w
    for _ in range(n_pass):
        w = w - basis @ (basis.T @ w)
    return w


def row_norms(mat: torch.Tensor):
    return torch.linalg.vector_norm(mat, ord=2, dim=1)
