"""Reading and writing basis vectors and engine state.

Every process writes its own row block to ``<base>.<rank>.npz`` where
``<rank>`` is the zero-padded process rank.  A basis file holds, for every
time interval ``i``:

* ``time_<i>`` – start time of the interval,
* ``spatial_basis_<i>`` – the basis vectors ``U``,
* ``singular_values_<i>`` – the singular values,

plus ``num_time_intervals``.  A state file holds a single
:class:`~rombasis.basis_state.BasisState` (``U``, ``Sigma``, ``Up`` and the
start time) so that a single-interval run can be resumed.

I/O errors are not caught here.
"""

from __future__ import annotations

import logging
import os

import numpy as np

from .basis_state import BasisState
from .intervals import TimeIntervals

logger = logging.getLogger(__name__)


def process_file_name(base_file_name: str, process_rank: int = 0) -> str:
    """Return the per-process file name for ``base_file_name``."""
    assert process_rank >= 0, "process rank must be non-negative"
    return f"{base_file_name}.{process_rank:06d}.npz"


def _key(name: str, which_interval: int) -> str:
    return f"{name}_{which_interval:06d}"


class BasisWriter:
    """Write the basis of every time interval of an engine to disk.

    Parameters
    ----------
    intervals : TimeIntervals
        Interval history of the engine whose bases are written.
    base_file_name : str
        Base part of the file name; the process rank is appended.
    process_rank : int, optional
        Rank of this process.
    """

    def __init__(self,
                 intervals: TimeIntervals,
                 base_file_name: str,
                 process_rank: int = 0) -> None:
        self.intervals = intervals
        self.file_name = process_file_name(base_file_name, process_rank)

    def write_basis(self) -> None:
        """Write the bases of all intervals collected so far.

        The file is rewritten as a whole, so calling this after each closed
        interval and once more at the end of sampling is safe.
        """
        n = self.intervals.num_time_intervals
        if n == 0:
            logger.warning("No samples taken; nothing written to %s", self.file_name)
            return

        arrays: dict[str, np.ndarray] = {"num_time_intervals": np.array(n)}
        for i, state in enumerate(self.intervals):
            arrays[_key("time", i)] = np.array(state.start_time)
            arrays[_key("spatial_basis", i)] = state.U
            arrays[_key("singular_values", i)] = state.singular_values

        directory = os.path.dirname(self.file_name)
        if directory:
            os.makedirs(directory, exist_ok=True)
        np.savez(self.file_name, **arrays)
        logger.info("Wrote %d time interval(s) to %s", n, self.file_name)


class BasisReader:
    """Read the bases written by :class:`BasisWriter`.

    Parameters
    ----------
    base_file_name : str
        Base part of the file name; the process rank is appended.
    process_rank : int, optional
        Rank of this process.
    """

    def __init__(self, base_file_name: str, process_rank: int = 0) -> None:
        self.file_name = process_file_name(base_file_name, process_rank)
        with np.load(self.file_name) as data:
            n = int(data["num_time_intervals"])
            self._start_times = [float(data[_key("time", i)]) for i in range(n)]
            self._bases = [data[_key("spatial_basis", i)] for i in range(n)]
            self._singular_values = [data[_key("singular_values", i)] for i in range(n)]
        self._last_basis_idx = -1

    @property
    def num_time_intervals(self) -> int:
        return len(self._start_times)

    def get_time_interval_start_time(self, which_interval: int) -> float:
        assert 0 <= which_interval < self.num_time_intervals, \
            "time interval index out of range"
        return self._start_times[which_interval]

    def is_new_basis(self, time: float) -> bool:
        """Return ``True`` if ``time`` needs a different basis than the last one read."""
        if self._last_basis_idx == -1:
            return True
        return (self._last_basis_idx < self.num_time_intervals - 1 and
                time >= self._start_times[self._last_basis_idx + 1])

    def get_spatial_basis(self, time: float) -> np.ndarray:
        """Return the basis of the interval containing ``time``."""
        self._last_basis_idx = self._interval_index(time)
        return self._bases[self._last_basis_idx]

    def get_singular_values(self, time: float) -> np.ndarray:
        return self._singular_values[self._interval_index(time)]

    def _interval_index(self, time: float) -> int:
        assert time >= 0.0, "time must be non-negative"
        assert self._start_times and time >= self._start_times[0], \
            "time precedes the first time interval"
        idx = 0
        for i, start in enumerate(self._start_times):
            if time >= start:
                idx = i
        return idx


def save_state(state: BasisState, state_file_name: str, process_rank: int = 0) -> str:
    """Persist ``state`` and return the file name used."""
    file_name = process_file_name(state_file_name, process_rank)
    np.savez(file_name,
             U=state.U,
             Sigma=state.Sigma,
             Up=state.Up,
             start_time=np.array(state.start_time))
    logger.info("Saved state (rank=%d, num_samples=%d) to %s",
                state.rank, state.num_samples, file_name)
    return file_name


def load_state(state_file_name: str, process_rank: int = 0) -> BasisState:
    """Load a state written by :func:`save_state`."""
    file_name = process_file_name(state_file_name, process_rank)
    with np.load(file_name) as data:
        state = BasisState(data["U"], data["Sigma"], data["Up"],
                           float(data["start_time"]))
    logger.info("Restored state (rank=%d, num_samples=%d) from %s",
                state.rank, state.num_samples, file_name)
    return state
