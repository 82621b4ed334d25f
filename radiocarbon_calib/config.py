"""
Load config from config.yaml with optional env overrides.
Single source of truth for the curve directory, default curve, time window and eps.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Tuple

import yaml

# Defaults if no YAML or env
_DEFAULTS = {
    "curves": {
        "dir": None,
        "default": "intcal13",
        "normal_range": [50000, 0],
    },
    "calibration": {
        "time_range": [50000, 0],
        "eps": 1e-5,
    },
}


def _config_yaml_path() -> Path:
    """Config.yaml lives at repo root (parent of package dir)."""
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml(path: Optional[Path] = None) -> dict:
    config_path = path or _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    curve_dir_env = os.environ.get("RCARBON_CURVE_DIR")
    if curve_dir_env:
        overrides.setdefault("curves", {})["dir"] = curve_dir_env
    default = os.environ.get("RCARBON_DEFAULT_CURVE")
    if default:
        overrides.setdefault("curves", {})["default"] = default
    eps = os.environ.get("RCARBON_EPS")
    if eps:
        overrides.setdefault("calibration", {})["eps"] = float(eps)
    return overrides


def get_config(path: Optional[Path] = None) -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(_DEFAULTS, _load_yaml(path))
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors
def curve_dir() -> Path:
    """Directory holding built-in <name>.14c files (defaults to the package's extdata/)."""
    configured = get_config()["curves"]["dir"]
    if configured:
        return Path(configured).expanduser()
    return Path(__file__).resolve().parent / "extdata"


def default_curve() -> str:
    return str(get_config()["curves"]["default"])


def normal_curve_range() -> Tuple[int, int]:
    start, end = get_config()["curves"]["normal_range"]
    return int(start), int(end)


def default_time_range() -> Tuple[int, int]:
    start, end = get_config()["calibration"]["time_range"]
    return int(start), int(end)


def default_eps() -> float:
    return float(get_config()["calibration"]["eps"])
