"""Single entry point for basis generation.

A simulation only talks to :class:`SVDBasisGenerator`: it asks whether a
snapshot is due, hands snapshots over, and signals the end of sampling.  The
generator owns the sampler (and through it the incremental SVD) and, when a
file name is given, the writer that flushes each finished time interval.
"""

from __future__ import annotations

import logging
import os

import numpy as np

from .basis_io import BasisWriter, load_state, process_file_name, save_state
from .config import IncrementalSVDOptions
from .sampler import IncrementalSVDSampler

logger = logging.getLogger(__name__)


class SVDBasisGenerator:
    """Drive incremental basis generation for one process.

    Parameters
    ----------
    options : IncrementalSVDOptions
        Engine, sampling and persistence options.
    basis_file_name : str, optional
        Base name of the basis file.  If ``None``, bases are not written.
    process_rank : int, optional
        Rank of this process, used to key every file it writes.
    """

    def __init__(self,
                 options: IncrementalSVDOptions,
                 basis_file_name: str | None = None,
                 process_rank: int = 0) -> None:
        self.options = options
        self.process_rank = int(process_rank)
        self.sampler = IncrementalSVDSampler(options)
        self.basis_writer: BasisWriter | None = None
        if basis_file_name:
            self.basis_writer = BasisWriter(self.sampler.svd.intervals,
                                            basis_file_name, self.process_rank)

        self._save_state = options.save_state
        if options.restore_state:
            state_file = process_file_name(options.state_file_name, self.process_rank)
            if os.path.exists(state_file):
                self.sampler.svd.restore(load_state(options.state_file_name,
                                                    self.process_rank))
            else:
                logger.warning("restore_state is set but %s does not exist; "
                               "starting from scratch.", state_file)

    def __enter__(self) -> "SVDBasisGenerator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.end_samples()

    def is_next_sample(self, time: float) -> bool:
        assert time >= 0.0, "time must be non-negative"
        return self.sampler.is_next_sample(time)

    def take_sample(self, u: np.ndarray, time: float, dt: float) -> bool:
        """Hand over the snapshot ``u`` taken at ``time``.

        If ``u`` opens a new time interval, the bases collected so far are
        flushed first and the sampling step is reset to ``dt``.
        """
        assert u is not None, "sample must not be None"
        assert time >= 0.0, "time must be non-negative"

        if (self.get_num_basis_time_intervals() > 0 and
                self.sampler.is_new_time_interval()):
            self.sampler.reset_dt(dt)
            if self.basis_writer is not None:
                self.basis_writer.write_basis()
            if self._save_state:
                logger.warning("More than one time interval; "
                               "the SVD state will not be saved.")
                self._save_state = False
        return self.sampler.take_sample(u, time)

    def end_samples(self) -> None:
        """Signal that the final snapshot has been taken."""
        if self.basis_writer is not None:
            self.basis_writer.write_basis()
        if self._save_state and self.get_num_basis_time_intervals() == 1:
            save_state(self.sampler.svd.state, self.options.state_file_name,
                       self.process_rank)

    def compute_next_sample_time(self,
                                 u: np.ndarray,
                                 rhs: np.ndarray,
                                 time: float) -> float:
        assert u is not None and rhs is not None
        assert time >= 0.0, "time must be non-negative"
        return self.sampler.compute_next_sample_time(u, rhs, time)

    def get_basis(self) -> np.ndarray:
        """Return the basis vectors of the current time interval."""
        return self.sampler.get_basis()

    def get_singular_values(self) -> np.ndarray:
        return self.sampler.get_singular_values()

    def get_num_basis_time_intervals(self) -> int:
        return self.sampler.get_num_basis_time_intervals()

    def get_basis_interval_start_time(self, which_interval: int) -> float:
        assert 0 <= which_interval < self.get_num_basis_time_intervals(), \
            "time interval index out of range"
        return self.sampler.get_basis_interval_start_time(which_interval)
