"""Construction parameters for basis generation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields

import numpy as np

from .utils import load_config, save_config


@dataclass
class IncrementalSVDOptions:
    """Options shared by the engine, the sampler and the generator.

    Parameters
    ----------
    dim : int
        Dimension of the system on this process.
    linearity_tol : float
        Residual norm at or below which a snapshot is linearly dependent.
    skip_linearly_dependent : bool
        If ``True``, linearly dependent snapshots do not grow the basis.
    samples_per_time_interval : int
        Number of snapshots per time interval.
    initial_dt : float
        Time step used by the sampler before any step-size control.
    sampling_tol : float
        Tolerated growth of the projection error between two snapshots.
    max_time_between_samples : float
        Upper bound on the sampling step.
    save_state, restore_state : bool
        Persist the state at the end of a single-interval run, or resume from
        a persisted state.  Multi-interval runs cannot be resumed.
    debug_algorithm : bool
        Log the factors after every snapshot.
    state_file_name : str
        Base name of the per-process state file.
    """

    dim: int
    linearity_tol: float
    skip_linearly_dependent: bool = True
    samples_per_time_interval: int = 2**31 - 1
    initial_dt: float = 1.0
    sampling_tol: float = 1e-3
    max_time_between_samples: float = np.inf
    save_state: bool = False
    restore_state: bool = False
    debug_algorithm: bool = False
    state_file_name: str = "state"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if self.dim <= 0:
            raise ValueError("dim must be a positive integer.")
        if self.linearity_tol <= 0.0:
            raise ValueError("linearity_tol must be positive.")
        if self.samples_per_time_interval <= 0:
            raise ValueError("samples_per_time_interval must be a positive integer.")
        if self.initial_dt <= 0.0:
            raise ValueError("initial_dt must be positive.")
        if self.sampling_tol <= 0.0:
            raise ValueError("sampling_tol must be positive.")
        if self.max_time_between_samples <= 0.0:
            raise ValueError("max_time_between_samples must be positive.")

    @classmethod
    def from_dict(cls, cfg: dict) -> "IncrementalSVDOptions":
        known = {f.name for f in fields(cls)}
        unknown = set(cfg) - known
        if unknown:
            raise ValueError(f"Unknown option(s): {', '.join(sorted(unknown))}")
        # PyYAML reads exponents without a dot (``1e-6``) as strings
        cfg = {key: _COERCE.get(key, _identity)(value) for key, value in cfg.items()}
        return cls(**cfg)

    @classmethod
    def from_yaml(cls, config_path: str) -> "IncrementalSVDOptions":
        """Read the options from a YAML mapping."""
        return cls.from_dict(load_config(config_path))

    def to_dict(self) -> dict:
        return asdict(self)

    def to_yaml(self, path: str) -> None:
        save_config(path, self.to_dict())


def _identity(value):
    return value


_COERCE = {
    "dim": int,
    "linearity_tol": float,
    "samples_per_time_interval": int,
    "initial_dt": float,
    "sampling_tol": float,
    "max_time_between_samples": float,
}
