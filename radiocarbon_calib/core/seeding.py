"""
Canonical RNG seeding: deterministic seed root from run_key + component salt.
Stochastic procedures (randomised uncalibrated ages) draw from an injected
numpy Generator; uncalibrate(run_key=...) builds one with rng_for(run_key, SALT_UNCALIBRATE).
Never use Python's built-in hash() (not stable across processes).

Contract: seed_root versioning
- SEED_ROOT_VERSION is the current version of the hashing scheme (salts, encoding, algorithm).
- If you change hashing scheme, salt set, or encoding, bump SEED_ROOT_VERSION.
"""

from __future__ import annotations

import hashlib
from typing import Optional

import numpy as np

# Version of seed_root derivation; bump when hashing scheme / salt set / encoding changes
SEED_ROOT_VERSION = 1

# Component-scoped salt names (reference these, never string literals)
SALT_UNCALIBRATE = "uncalibrate"


def seed_root(run_key: str, *, salt: str, version: int = SEED_ROOT_VERSION) -> int:
    """
    Derive a stable 63-bit seed from run_key and component salt.
    Same (run_key, salt, version) yields the same seed across process runs.
    """
    payload = f"{run_key}|{salt}|{version}".encode("utf-8")
    digest = hashlib.sha256(payload).digest()
    seed = int.from_bytes(digest[:8], byteorder="big")
    return seed % (2**63)


def rng_for(run_key: str, salt: str, version: int = SEED_ROOT_VERSION) -> np.random.Generator:
    """Return a numpy Generator seeded from seed_root(run_key, salt=salt)."""
    return np.random.default_rng(seed_root(run_key, salt=salt, version=version))


def rng_from_seed(seed: Optional[int]) -> np.random.Generator:
    """
    Build a Generator from an explicit seed.
    If seed is None, returns a non-deterministic generator.
    """
    if seed is not None:
        return np.random.default_rng(seed)
    return np.random.default_rng()


__all__ = [
    "SEED_ROOT_VERSION",
    "SALT_UNCALIBRATE",
    "rng_for",
    "rng_from_seed",
    "seed_root",
]
