"""
config.py — Engine tunables and logging setup.

Tunables default to the values the editor ships with and can be
overridden from the environment, e.g. ``BUBBLE_SAFE_ZONE_ROWS=40``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class EngineConfig:
    safe_zone_rows:     int   = 20     # target y values sampled per outline
    path_precision:     int   = 100    # points sampled along the perimeter
    safe_zone_shrink:   float = 0.70   # fraction of the crossing span kept
    fit_max_iterations: int   = 20
    export_scale:       float = 2.0
    log_level:          str   = DEFAULT_LOG_LEVEL


DEFAULT_CONFIG = EngineConfig()


def load_config() -> EngineConfig:
    """Build an EngineConfig from BUBBLE_* environment overrides."""
    return EngineConfig(
        safe_zone_rows=_env_int("BUBBLE_SAFE_ZONE_ROWS", DEFAULT_CONFIG.safe_zone_rows),
        path_precision=_env_int("BUBBLE_PATH_PRECISION", DEFAULT_CONFIG.path_precision),
        safe_zone_shrink=_env_float("BUBBLE_SAFE_ZONE_SHRINK", DEFAULT_CONFIG.safe_zone_shrink),
        fit_max_iterations=_env_int("BUBBLE_FIT_MAX_ITERATIONS",
                                    DEFAULT_CONFIG.fit_max_iterations),
        export_scale=_env_float("BUBBLE_EXPORT_SCALE", DEFAULT_CONFIG.export_scale),
        log_level=(os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )


def configure_logging(level: str | None = None) -> None:
    """
    Install the editor's log format once; later calls only change the
    root level.  Unknown level names fall back to INFO.
    """
    name = (level or os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    numeric = logging.getLevelName(name)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(numeric if isinstance(numeric, int) else logging.INFO)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise RuntimeError(f"Invalid integer for {name}: {value}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise RuntimeError(f"Invalid float for {name}: {value}")
