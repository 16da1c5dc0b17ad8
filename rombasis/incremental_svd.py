"""Incremental SVD of a snapshot stream using Brand's fast update.

Snapshots ``u_1, u_2, ...`` arrive one at a time.  For the snapshots of the
current time interval the engine maintains

    X = [u_1, ..., u_n] ≈ U @ Sigma @ Up.T,

without ever storing ``X`` or the right singular vectors over the full
history.  Each new snapshot ``u`` is split into its projection
``l = U.T @ u`` and the residual ``u - U @ l`` of norm ``k``.  The small
matrix

    Q = [[Sigma, l],
         [0,     k]]

is decomposed as ``Q = A @ diag(s) @ B.T`` and the factors are rotated:

    U  <- [U, j] @ A          (j = normalised residual)
    Up <- [[Up, 0], [0, 1]] @ B
    Sigma <- diag(s)

The cost per snapshot is ``O(m r^2)`` for the rotation of ``U`` plus an SVD of
size ``(r+1) × (r+1)``.  When the residual norm is within ``linearity_tol``
and linearly dependent snapshots are skipped, the last row of ``Q`` is
dropped: ``U`` is only rotated and the rank does not grow.

Example
-------

```python
import numpy as np
from rombasis import IncrementalSVD

isvd = IncrementalSVD(dim=3, linearity_tol=1e-6,
                      skip_linearly_dependent=True,
                      samples_per_time_interval=10)
isvd.take_sample(np.array([1.0, 0.0, 0.0]), time=0.0)
isvd.take_sample(np.array([0.0, 1.0, 0.0]), time=0.1)
U = isvd.compute_basis()          # shape (3, 2)
```
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.linalg import norm, svd

from .basis_state import BasisState
from .intervals import TimeIntervals
from .metrics import orth_error

logger = logging.getLogger(__name__)

# Smallest singular value relative to the largest below which the basis is
# reported as becoming rank deficient.
_RANK_DEFICIENCY_RATIO = np.sqrt(np.finfo(float).eps)

# Norm a normalised residual must keep after reprojection to count as a
# direction of its own.
_NOISE_DIRECTION_NORM = 0.5


def _extend_up(Up: np.ndarray) -> np.ndarray:
    """Return ``[[Up, 0], [0, 1]]``."""
    n, r = Up.shape
    W = np.zeros((n + 1, r + 1), dtype=Up.dtype)
    W[:n, :r] = Up
    W[n, r] = 1.0
    return W


def _complement_direction(U: np.ndarray) -> np.ndarray:
    """Unit vector orthogonal to ``span(U)``.

    Starts from the coordinate axis with the smallest leverage in ``U`` so the
    projected vector has norm at least ``sqrt(1 - r/m)``.
    """
    m = U.shape[0]
    e = np.zeros(m)
    e[np.argmin(np.sum(U * U, axis=1))] = 1.0
    j = e - U @ (U.T @ e)
    j -= U @ (U.T @ j)
    return j / norm(j)


class IncrementalSVD:
    """Fast-update incremental SVD with time intervals.

    Parameters
    ----------
    dim : int
        Length of the snapshots (the dimension of the system on this
        process).
    linearity_tol : float
        A snapshot whose residual norm with respect to the current basis is
        ``<= linearity_tol`` is linearly dependent.
    skip_linearly_dependent : bool
        If ``True``, linearly dependent snapshots rotate the basis without
        increasing its rank.  If ``False``, every snapshot adds a basis
        direction.
    samples_per_time_interval : int
        Number of snapshots per time interval.  The snapshot after a full
        interval starts a new, independent basis.
    debug_algorithm : bool, optional
        If ``True``, the factors are logged at ``DEBUG`` level after every
        snapshot.

    Notes
    -----
    The engine is not copyable: a basis state belongs to exactly one engine.
    Calls must come from a single thread, in non-decreasing ``time`` order.

    Near-singular small matrices are not treated specially.  When the
    smallest singular value drops below ``sqrt(eps)`` times the largest one a
    warning is logged, since the basis is then becoming rank deficient.
    """

    def __init__(self,
                 dim: int,
                 linearity_tol: float,
                 skip_linearly_dependent: bool,
                 samples_per_time_interval: int,
                 debug_algorithm: bool = False) -> None:
        if dim <= 0:
            raise ValueError("dim must be a positive integer.")
        if linearity_tol <= 0.0:
            raise ValueError("linearity_tol must be positive.")
        self.dim = int(dim)
        self.linearity_tol = float(linearity_tol)
        self.skip_linearly_dependent = bool(skip_linearly_dependent)
        self.debug_algorithm = bool(debug_algorithm)
        self.intervals = TimeIntervals(samples_per_time_interval)
        self._rank_deficient_state: BasisState | None = None

    def __copy__(self):
        raise TypeError(f"{type(self).__name__} objects cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError(f"{type(self).__name__} objects cannot be copied")

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def take_sample(self, u: np.ndarray, time: float) -> bool:
        """Fold the snapshot ``u`` taken at ``time`` into the SVD.

        The first snapshot of every time interval builds a new rank-1 SVD;
        all other snapshots update the current one.  Returns ``True`` once the
        snapshot has been folded in.
        """
        u = self._check_sample(u)
        assert time >= 0.0, "time must be non-negative"

        if self.is_new_time_interval():
            self.build_initial_svd(u, time)
        else:
            self.build_incremental_svd(u)

        if self.debug_algorithm:
            self._log_state()
        return True

    def build_initial_svd(self, u: np.ndarray, time: float) -> None:
        """Close the current interval and start a new one from ``u``."""
        u = self._check_sample(u)
        assert time >= 0.0, "time must be non-negative"
        state = BasisState.from_sample(u, time)
        self.intervals.start(state)
        logger.info("Started time interval %d at t=%g",
                    self.intervals.num_time_intervals - 1, time)

    def build_incremental_svd(self, u: np.ndarray) -> None:
        """Update the current interval with snapshot ``u``."""
        u = self._check_sample(u)
        state = self._current()
        U = state.U

        # Project onto the basis; the second pass restores orthogonality of
        # the residual lost to cancellation.
        l = U.T @ u
        u_orth = u - U @ l
        correction = U.T @ u_orth
        l += correction
        u_orth -= U @ correction
        k = float(norm(u_orth))

        linearly_dependent = k <= self.linearity_tol
        if linearly_dependent and self.skip_linearly_dependent:
            self._update_dependent(l)
        elif state.rank >= state.dim:
            logger.warning("Basis already spans all %d dimensions; "
                           "adding the sample without a new direction.", state.dim)
            self._update_dependent(l)
        else:
            j = u_orth / k if k > 0.0 else u_orth
            # A residual made of rounding error loses most of its norm here.
            j -= U @ (U.T @ j)
            norm_j = norm(j)
            if norm_j >= _NOISE_DIRECTION_NORM:
                j /= norm_j
            else:
                # Residual is numerically zero but a direction must be added.
                j = _complement_direction(U)
                k = 0.0
            self._update_new(l, j, k)

        self._check_spectrum()

    def _update_new(self, l: np.ndarray, j: np.ndarray, k: float) -> None:
        state = self._current()
        r = state.rank
        Q = np.zeros((r + 1, r + 1))
        Q[:r, :r] = state.Sigma
        Q[:r, r] = l
        Q[r, r] = k
        A, s, Bt = svd(Q)
        self.add_new_sample(j, A, Bt.T, np.diag(s))

    def _update_dependent(self, l: np.ndarray) -> None:
        state = self._current()
        Q = np.hstack((state.Sigma, l[:, None]))   # (r, r+1)
        A, s, Bt = svd(Q, full_matrices=False)
        self.add_linearly_dependent_sample(A, Bt.T, np.diag(s))

    def add_new_sample(self,
                       j: np.ndarray,
                       A: np.ndarray,
                       B: np.ndarray,
                       sigma: np.ndarray) -> None:
        """Add a snapshot with a new direction ``j`` to the SVD.

        Parameters
        ----------
        j : ndarray of shape (dim,)
            Unit vector orthogonal to the current basis.
        A : ndarray of shape (r+1, r+1)
            Left singular vectors of the small matrix ``Q``.
        B : ndarray of shape (r+1, r+1)
            Right singular vectors of ``Q``.
        sigma : ndarray of shape (r+1, r+1)
            Singular values of ``Q`` as a diagonal matrix.
        """
        state = self._current()
        U_new = np.hstack((state.U, j[:, None])) @ A
        Up_new = _extend_up(state.Up) @ B
        state.replace(U_new, sigma, Up_new)

    def add_linearly_dependent_sample(self,
                                      A: np.ndarray,
                                      B: np.ndarray,
                                      sigma: np.ndarray) -> None:
        """Add a snapshot that lies in the span of the current basis.

        Parameters
        ----------
        A : ndarray of shape (r, r)
            Left singular vectors of ``Q = [Sigma, l]``.
        B : ndarray of shape (r+1, r)
            Right singular vectors of ``Q``.
        sigma : ndarray of shape (r, r)
            Singular values of ``Q`` as a diagonal matrix.
        """
        state = self._current()
        U_new = state.U @ A
        Up_new = _extend_up(state.Up) @ B
        state.replace(U_new, sigma, Up_new)

    def restore(self, state: BasisState) -> None:
        """Install a previously saved state as the current interval."""
        assert state.dim == self.dim, "restored state has the wrong dimension"
        self.intervals.start(state)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def compute_basis(self) -> np.ndarray:
        """Return a copy of the basis vectors of the current interval."""
        return self._current().U.copy()

    def get_singular_values(self) -> np.ndarray:
        return self._current().singular_values

    def is_new_time_interval(self) -> bool:
        return self.intervals.is_new_time_interval()

    def get_num_basis_time_intervals(self) -> int:
        return self.intervals.num_time_intervals

    def get_basis_interval_start_time(self, which_interval: int) -> float:
        return self.intervals.start_time(which_interval)

    @property
    def state(self) -> BasisState:
        return self._current()

    @property
    def U(self) -> np.ndarray:
        return self._current().U

    @property
    def Sigma(self) -> np.ndarray:
        return self._current().Sigma

    @property
    def Up(self) -> np.ndarray:
        return self._current().Up

    @property
    def rank(self) -> int:
        return self._current().rank

    @property
    def num_samples(self) -> int:
        return self._current().num_samples

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _current(self) -> BasisState:
        state = self.intervals.current
        assert state is not None, "no sample has been taken yet"
        return state

    def _check_sample(self, u) -> np.ndarray:
        u = np.asarray(u, dtype=float)
        assert u.shape == (self.dim,), \
            f"sample must have shape ({self.dim},), got {u.shape}"
        assert np.all(np.isfinite(u)), "sample contains non-finite values"
        return u

    def _check_spectrum(self) -> None:
        state = self._current()
        if state is self._rank_deficient_state:
            return
        s = np.diag(state.Sigma)
        if s[-1] <= _RANK_DEFICIENCY_RATIO * s[0]:
            # reported once per interval
            self._rank_deficient_state = state
            logger.warning("Smallest singular value %.3e is negligible next to "
                           "the largest %.3e; the basis is becoming rank deficient.",
                           s[-1], s[0])

    def _log_state(self) -> None:
        state = self._current()
        logger.debug("interval %d: rank=%d num_samples=%d orth_error=%.3e",
                     self.intervals.num_time_intervals - 1, state.rank,
                     state.num_samples, orth_error(state.U))
        logger.debug("U =\n%s", state.U)
        logger.debug("Sigma =\n%s", state.Sigma)
        logger.debug("Up =\n%s", state.Up)
