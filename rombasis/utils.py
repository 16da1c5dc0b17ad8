"""Miscellaneous helpers: YAML configuration files and logging setup."""

from __future__ import annotations

import logging
import sys

import yaml


def load_config(config_path: str) -> dict:
    """Load a YAML configuration file.

    Parameters
    ----------
    config_path : str
        Path to a YAML file.

    Returns
    -------
    cfg : dict
        Configuration dictionary.  An empty file yields an empty dictionary.
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        cfg = yaml.safe_load(f)
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{config_path} does not contain a YAML mapping.")
    return cfg


def save_config(path: str, cfg: dict) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f)


def setup_logging(level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """Configure the ``rombasis`` logger.

    Parameters
    ----------
    level : str, optional
        Logging level name (``DEBUG``, ``INFO``, ``WARNING``, ``ERROR``).
    log_file : str, optional
        If provided, records are also written to this file.

    Returns
    -------
    logger : logging.Logger
        The configured package logger.
    """
    logger = logging.getLogger("rombasis")
    logger.setLevel(getattr(logging, level.upper()))

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
