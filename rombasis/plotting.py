"""Plotting utilities for inspecting generated bases."""

from __future__ import annotations

import matplotlib.pyplot as plt
import numpy as np

from .intervals import TimeIntervals


def _finish(fig, outfile: str | None) -> None:
    plt.tight_layout()
    if outfile:
        plt.savefig(outfile)
        plt.close(fig)
    else:
        plt.show()


def plot_singular_values(intervals: TimeIntervals,
                         title: str = "Singular values per time interval",
                         normalize: bool = True,
                         outfile: str | None = None) -> None:
    """Plot the singular value decay of every time interval.

    Parameters
    ----------
    intervals : TimeIntervals
        Interval history of an incremental SVD.
    title : str, optional
        Title of the plot.
    normalize : bool, optional
        If True, divide each spectrum by its largest singular value.
    outfile : str, optional
        If provided, the figure is saved to this path instead of shown.
    """
    fig, ax = plt.subplots(figsize=(7, 5))
    for i, state in enumerate(intervals):
        s = state.singular_values
        if normalize and s[0] > 0.0:
            s = s / s[0]
        # zero singular values cannot be drawn on a log axis
        s = np.where(s > 0.0, s, np.nan)
        ax.semilogy(np.arange(1, len(s) + 1), s, marker='o',
                    label=f"interval {i} (t0={state.start_time:g})")
    ax.set_xlabel("Index")
    ax.set_ylabel("sigma_i / sigma_1" if normalize else "sigma_i")
    ax.set_title(title)
    ax.grid(True, which='both', linestyle='--', linewidth=0.5)
    if len(intervals):
        ax.legend(loc='best')
    _finish(fig, outfile)


def plot_rank_history(times: np.ndarray,
                      ranks: list[int],
                      interval_starts: list[float] | None = None,
                      title: str = "Basis rank over time",
                      outfile: str | None = None) -> None:
    """Plot the basis rank after every snapshot.

    Parameters
    ----------
    times : ndarray of shape (T,)
        Snapshot times.
    ranks : list of int
        Rank of the current basis after each snapshot.
    interval_starts : list of float, optional
        Start times of the time intervals, drawn as vertical lines.
    title : str, optional
        Title of the plot.
    outfile : str, optional
        If provided, save the figure instead of displaying it.
    """
    fig, ax = plt.subplots(figsize=(10, 4))
    ax.step(times, ranks, where='post')
    if interval_starts:
        for t in interval_starts:
            ax.axvline(x=t, color="k", linestyle="--", linewidth=0.8)
    ax.set_xlabel("Time")
    ax.set_ylabel("Rank")
    ax.set_title(title)
    ax.grid(True, linestyle="--", linewidth=0.5)
    _finish(fig, outfile)
