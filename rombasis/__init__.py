"""Incremental reduced-basis generation (rombasis).

This package builds low-rank bases for model-order reduction from a stream of
simulation snapshots, without storing the snapshot matrix.  The main
components are:

* :mod:`basis_state` – the factorisation ``U Sigma Up^T`` of one time interval;
* :mod:`incremental_svd` – Brand's fast-update incremental SVD;
* :mod:`intervals` – the append-only history of time intervals;
* :mod:`sampler` – step-size control deciding when a snapshot is due;
* :mod:`generator` – the entry point used by a simulation;
* :mod:`basis_io` – per-process basis and state files;
* :mod:`config` – construction options, loadable from YAML;
* :mod:`metrics` / :mod:`plotting` – diagnostics.

The top-level API exports the most commonly used classes.
"""

from .basis_state import BasisState  # noqa: F401
from .config import IncrementalSVDOptions  # noqa: F401
from .generator import SVDBasisGenerator  # noqa: F401
from .incremental_svd import IncrementalSVD  # noqa: F401

__all__ = ["BasisState", "IncrementalSVD", "IncrementalSVDOptions", "SVDBasisGenerator"]
