"""Mutable factorisation of one time interval.

A :class:`BasisState` holds the fast-update factorisation of the snapshots
collected in a single time interval,

    X ≈ U @ Sigma @ Up.T,

where ``X`` has one column per snapshot.  ``U`` are the left singular vectors
(the reduced basis), ``Sigma`` is the square diagonal matrix of singular
values and ``Up`` carries one row of coordinates per snapshot.  ``Up`` plays
the role of the right singular vectors; it is small (``num_samples × rank``)
and never row-distributed.

Once an interval is closed its state is frozen: the arrays are marked
read-only and any further update is rejected.
"""

from __future__ import annotations

import numpy as np


class BasisState:
    """Left singular vectors, singular values and per-sample coordinates.

    Parameters
    ----------
    U : ndarray of shape (dim, rank)
        Orthonormal left singular vectors.
    Sigma : ndarray of shape (rank, rank)
        Diagonal matrix of singular values (descending).
    Up : ndarray of shape (num_samples, rank)
        Coordinates of every snapshot of the interval in the current basis.
    start_time : float
        Simulation time of the first snapshot of the interval.
    """

    def __init__(self,
                 U: np.ndarray,
                 Sigma: np.ndarray,
                 Up: np.ndarray,
                 start_time: float) -> None:
        U = np.array(U, dtype=float)
        Sigma = np.array(Sigma, dtype=float)
        Up = np.array(Up, dtype=float)
        assert U.ndim == 2 and U.shape[0] > 0, "U must be a non-empty matrix"
        rank = U.shape[1]
        assert Sigma.shape == (rank, rank), "Sigma must be rank x rank"
        assert Up.ndim == 2 and Up.shape[1] == rank, "Up must have rank columns"
        assert rank <= Up.shape[0], "rank cannot exceed the number of samples"

        self._U = U
        self._Sigma = Sigma
        self._Up = Up
        self.start_time = float(start_time)
        self._frozen = False

    @classmethod
    def from_sample(cls, u: np.ndarray, time: float) -> "BasisState":
        """Build the rank-1 state of a new interval from its first snapshot.

        ``Up`` starts as ``[[1]]`` so that ``U @ Sigma @ Up.T`` returns the
        snapshot itself.
        """
        norm_u = float(np.linalg.norm(u))
        assert norm_u > 0.0, "the first sample of an interval must be non-zero"
        U = (u / norm_u)[:, None]
        Sigma = np.array([[norm_u]])
        Up = np.ones((1, 1))
        return cls(U, Sigma, Up, time)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def U(self) -> np.ndarray:
        return self._U

    @property
    def Sigma(self) -> np.ndarray:
        return self._Sigma

    @property
    def Up(self) -> np.ndarray:
        return self._Up

    @property
    def dim(self) -> int:
        return self._U.shape[0]

    @property
    def rank(self) -> int:
        return self._U.shape[1]

    @property
    def num_samples(self) -> int:
        return self._Up.shape[0]

    @property
    def singular_values(self) -> np.ndarray:
        return np.diag(self._Sigma).copy()

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace(self, U: np.ndarray, Sigma: np.ndarray, Up: np.ndarray) -> None:
        """Swap in a new factorisation.

        ``U`` and ``Sigma`` are always replaced together with ``Up``; the old
        buffers are dropped.
        """
        assert not self._frozen, "cannot update a frozen basis state"
        rank = U.shape[1]
        assert U.shape[0] == self.dim, "the dimension of a basis state is fixed"
        assert Sigma.shape == (rank, rank)
        assert Up.shape[1] == rank
        assert rank <= Up.shape[0]
        self._U = U
        self._Sigma = Sigma
        self._Up = Up

    def freeze(self) -> None:
        """Mark the state immutable.  Idempotent."""
        for arr in (self._U, self._Sigma, self._Up):
            arr.flags.writeable = False
        self._frozen = True

    def reconstruct(self) -> np.ndarray:
        """Return ``U @ Sigma @ Up.T``, one column per snapshot."""
        return self._U @ self._Sigma @ self._Up.T

    def copy(self) -> "BasisState":
        """Return an unfrozen deep copy."""
        return BasisState(self._U, self._Sigma, self._Up, self.start_time)

    def __repr__(self) -> str:
        return (f"BasisState(dim={self.dim}, rank={self.rank}, "
                f"num_samples={self.num_samples}, start_time={self.start_time}, "
                f"frozen={self._frozen})")
