__all__ = ['whiten']

import torch

from ratiocut_pytorch.utils.math import row_norms


@torch.no_grad()
def whiten(eigvec: torch.Tensor, method: str = "row_normalize", eps: float = 1e-8) -> torch.Tensor:
    """Normalize the spectral embedding in place before clustering.

    Args:
        eigvec (torch.Tensor): eigenvectors, shape (n, k), one row per vertex. Modified in place.
        method (str): 'row_normalize' scales each row to unit L2 norm, rows with norm
            below eps become zero. 'standardize' centers every column and scales it
            to unit standard deviation, rows are left unnormalized.
        eps (float): norm below which a row (or the std of a column) is treated as zero
    Returns:
        torch.Tensor: the same tensor, for chaining
    """
    if method == "standardize":
        return _standardize_columns(eigvec, eps)
    if method != "row_normalize":
        raise ValueError(f"Invalid whitening method: {method}")

    norms = row_norms(eigvec)
    nonzero = norms > eps
    scale = torch.where(nonzero, 1.0 / norms.clamp_min(eps), torch.zeros_like(norms))
    eigvec.mul_(scale[:, None])
    return eigvec


def _standardize_columns(eigvec: torch.Tensor, eps: float):
    n = eigvec.shape[0]
    eigvec.sub_(eigvec.mean(0, keepdim=True))
    std = torch.linalg.vector_norm(eigvec, dim=0) / n ** 0.5
    # a constant column carries no information, leave it at zero
    eigvec.div_(torch.where(std > eps, std, torch.ones_like(std)))
    return eigvec
