"""Sampling control for incremental basis generation.

The :class:`IncrementalSVDSampler` owns one
:class:`~rombasis.incremental_svd.IncrementalSVD` and decides when the
simulation should hand over its next snapshot.  The sampling step is chosen
from how fast the state leaves the span of the current basis: with ``P`` the
basis and ``rhs = du/dt``, the projection error grows at the rate

    ||(I - P P^T) rhs||,

so the next sample is scheduled once this growth would reach
``sampling_tol``.  The step is clamped relative to the previous one.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.linalg import norm

from .config import IncrementalSVDOptions
from .incremental_svd import IncrementalSVD

logger = logging.getLogger(__name__)


class IncrementalSVDSampler:
    """Step-size controlled sampler around an incremental SVD.

    Parameters
    ----------
    options : IncrementalSVDOptions
        Engine and sampling parameters.
    min_sampling_time_step_scale : float, optional
        Smallest allowed ratio between consecutive sampling steps.
    sampling_time_step_scale : float, optional
        Safety factor applied to the estimated step.
    max_sampling_time_step_scale : float, optional
        Largest allowed ratio between consecutive sampling steps.
    """

    def __init__(self,
                 options: IncrementalSVDOptions,
                 min_sampling_time_step_scale: float = 0.1,
                 sampling_time_step_scale: float = 0.8,
                 max_sampling_time_step_scale: float = 5.0) -> None:
        if not 0.0 < min_sampling_time_step_scale <= max_sampling_time_step_scale:
            raise ValueError("Sampling time step scales must satisfy "
                             "0 < min_scale <= max_scale.")
        if sampling_time_step_scale <= 0.0:
            raise ValueError("sampling_time_step_scale must be positive.")

        self.options = options
        self.svd = IncrementalSVD(options.dim,
                                  options.linearity_tol,
                                  options.skip_linearly_dependent,
                                  options.samples_per_time_interval,
                                  debug_algorithm=options.debug_algorithm)
        self.min_sampling_time_step_scale = float(min_sampling_time_step_scale)
        self.sampling_time_step_scale = float(sampling_time_step_scale)
        self.max_sampling_time_step_scale = float(max_sampling_time_step_scale)
        self.tol = float(options.sampling_tol)
        self.max_time_between_samples = float(options.max_time_between_samples)
        self.dt = float(options.initial_dt)
        self.next_sample_time = 0.0

    def is_next_sample(self, time: float) -> bool:
        assert time >= 0.0, "time must be non-negative"
        return time >= self.next_sample_time

    def take_sample(self, u: np.ndarray, time: float) -> bool:
        return self.svd.take_sample(u, time)

    def compute_next_sample_time(self,
                                 u: np.ndarray,
                                 rhs: np.ndarray,
                                 time: float) -> float:
        """Estimate when the next snapshot is needed.

        Parameters
        ----------
        u : ndarray of shape (dim,)
            State at ``time``.
        rhs : ndarray of shape (dim,)
            Time derivative of the state at ``time``.
        time : float
            Current simulation time.

        Returns
        -------
        next_sample_time : float
            Time at which :meth:`is_next_sample` starts returning ``True``.
        """
        assert time >= 0.0, "time must be non-negative"
        u = np.asarray(u, dtype=float)
        rhs = np.asarray(rhs, dtype=float)
        assert u.shape == (self.options.dim,) and rhs.shape == (self.options.dim,)

        # A zero state carries no information about the basis.
        if norm(u) == 0.0:
            return self.next_sample_time

        P = self.svd.compute_basis()
        eta_dot = rhs - P @ (P.T @ rhs)
        rate = float(norm(eta_dot))

        if rate > 0.0:
            dt = self.sampling_time_step_scale * self.tol / rate
        else:
            dt = self.max_sampling_time_step_scale * self.dt
        dt = min(max(dt, self.min_sampling_time_step_scale * self.dt),
                 self.max_sampling_time_step_scale * self.dt,
                 self.max_time_between_samples)

        self.dt = dt
        self.next_sample_time = time + dt
        logger.debug("t=%g: projection error rate %.3e, next sample at t=%g",
                     time, rate, self.next_sample_time)
        return self.next_sample_time

    def reset_dt(self, dt: float) -> None:
        assert dt > 0.0, "dt must be positive"
        self.dt = float(dt)

    def is_new_time_interval(self) -> bool:
        return self.svd.is_new_time_interval()

    def get_basis(self) -> np.ndarray:
        return self.svd.compute_basis()

    def get_singular_values(self) -> np.ndarray:
        return self.svd.get_singular_values()

    def get_num_basis_time_intervals(self) -> int:
        return self.svd.get_num_basis_time_intervals()

    def get_basis_interval_start_time(self, which_interval: int) -> float:
        return self.svd.get_basis_interval_start_time(which_interval)
