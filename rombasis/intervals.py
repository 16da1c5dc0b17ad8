"""Time-interval bookkeeping.

The snapshot stream is cut into consecutive time intervals, each owning its
own :class:`~rombasis.basis_state.BasisState`.  Only the last interval is
mutable; earlier ones are frozen history.
"""

from __future__ import annotations

from typing import Iterator

from .basis_state import BasisState


class TimeIntervals:
    """Append-only history of basis states.

    Parameters
    ----------
    samples_per_time_interval : int
        Number of snapshots after which the current interval is full and the
        next snapshot opens a new interval.
    """

    def __init__(self, samples_per_time_interval: int) -> None:
        if samples_per_time_interval <= 0:
            raise ValueError("samples_per_time_interval must be a positive integer.")
        self.samples_per_time_interval = int(samples_per_time_interval)
        self._states: list[BasisState] = []

    def is_new_time_interval(self) -> bool:
        """Return ``True`` if the next snapshot has to start a new interval."""
        if not self._states:
            return True
        current = self._states[-1]
        return current.frozen or current.num_samples >= self.samples_per_time_interval

    def start(self, state: BasisState) -> None:
        """Close the current interval (if any) and make ``state`` current."""
        self.close()
        self._states.append(state)

    def close(self) -> None:
        if self._states:
            self._states[-1].freeze()

    @property
    def current(self) -> BasisState | None:
        if not self._states:
            return None
        return self._states[-1]

    @property
    def num_time_intervals(self) -> int:
        return len(self._states)

    def start_time(self, which_interval: int) -> float:
        assert 0 <= which_interval < len(self._states), \
            "time interval index out of range"
        return self._states[which_interval].start_time

    def __getitem__(self, which_interval: int) -> BasisState:
        assert 0 <= which_interval < len(self._states), \
            "time interval index out of range"
        return self._states[which_interval]

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[BasisState]:
        return iter(self._states)
