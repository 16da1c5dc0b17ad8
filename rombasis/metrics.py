"""Metric functions for checking an incrementally built basis."""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.linalg import norm

from .basis_state import BasisState


def orth_error(U: np.ndarray) -> float:
    """Compute the orthogonality error ``||I - U^T U||_F``.

    Parameters
    ----------
    U : ndarray of shape (m, r)
        Left singular vectors.

    Returns
    -------
    gamma : float
        Frobenius norm of the deviation of ``U`` from orthonormality.
    """
    r = U.shape[1]
    return float(norm(np.eye(r) - U.T @ U, 'fro'))


def reconstruction_errors(state: BasisState,
                          samples: Sequence[np.ndarray]) -> np.ndarray:
    """Per-sample reconstruction error ``||u_i - U Sigma Up[i]^T||``.

    Parameters
    ----------
    state : BasisState
        Factorisation of one time interval.
    samples : sequence of ndarray
        The snapshots folded into ``state``, in the order they were taken.

    Returns
    -------
    errs : ndarray of shape (num_samples,)
        Euclidean reconstruction error of every snapshot.
    """
    assert len(samples) == state.num_samples, \
        "one sample per row of Up is required"
    X = np.column_stack(samples)
    return norm(X - state.reconstruct(), axis=0)


def relative_error(state: BasisState, samples: Sequence[np.ndarray]) -> float:
    """Relative Frobenius error of the snapshot reconstruction.

    Returns ``||X - U Sigma Up^T||_F / max(1, ||X||_F)``.
    """
    X = np.column_stack(samples)
    return float(norm(X - state.reconstruct(), 'fro') / max(1.0, norm(X, 'fro')))


def projection_error(U: np.ndarray, u: np.ndarray) -> float:
    """Norm of the component of ``u`` orthogonal to ``span(U)``."""
    return float(norm(u - U @ (U.T @ u)))


def rank_history_jitter(ranks: Sequence[int]) -> int:
    """Total rank change ``sum_t |r_t - r_{t-1}|`` over a rank history.

    Within one time interval the rank only grows, so the jitter equals the
    final rank minus the initial one.
    """
    if len(ranks) < 2:
        return 0
    return int(sum(abs(ranks[i] - ranks[i - 1]) for i in range(1, len(ranks))))
