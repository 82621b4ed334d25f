"""Namespace re-export of the central RNG helpers in core.seeding."""

from __future__ import annotations

from radiocarbon_calib.core.seeding import (
    SALT_UNCALIBRATE,
    SEED_ROOT_VERSION,
    rng_for,
    rng_from_seed,
    seed_root,
)

__all__ = [
    "SEED_ROOT_VERSION",
    "SALT_UNCALIBRATE",
    "rng_for",
    "rng_from_seed",
    "seed_root",
]
