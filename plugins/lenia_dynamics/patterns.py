"""
Initial Field Patterns

Named initializers for a fresh N x N float32 field. All blobs are stamped
with periodic wraparound, and every pattern is deterministic for a given
numpy Generator.

    noise     - uniform noise in [0, noise_amp)
    spot      - one centered gaussian blob plus light noise
    sprinkle  - many small gaussian blobs, count scaling with grid area
    primordia - sprinkle tuned for fragmented, many-small-structures regimes
"""

import math

import numpy as np

from .errors import ConfigurationError


def _stamp_blob(A, cx, cy, sigma, amp, rad):
    """Add amp * exp(-r^2 / 2 sigma^2) around (cx, cy), wrapping at edges."""
    n = A.shape[0]
    y, x = np.ogrid[-rad:rad + 1, -rad:rad + 1]
    blob = amp * np.exp(-(x * x + y * y) / (2.0 * sigma * sigma))
    rows = (cy + np.arange(-rad, rad + 1)) % n
    cols = (cx + np.arange(-rad, rad + 1)) % n
    # add.at accumulates correctly if the stamp wraps onto itself
    np.add.at(A, (rows[:, None], cols[None, :]), blob.astype(np.float32))
    return A


def seed_noise(size, rng, noise_amp=0.1, **_kw):
    return (noise_amp * rng.random((size, size))).astype(np.float32)


def seed_spot(size, rng, noise_amp=0.1, spot_sigma_frac=0.12, spot_amp=0.8, **_kw):
    """Centered gaussian blob + half-strength noise."""
    A = np.zeros((size, size), dtype=np.float32)
    c = (size - 1) // 2
    sigma = max(1.0, spot_sigma_frac * size)
    rad = max(6, int(math.ceil(3.0 * sigma)))
    _stamp_blob(A, c, c, sigma, spot_amp, rad)
    A += (0.5 * noise_amp * rng.random((size, size))).astype(np.float32)
    np.clip(A, 0, 1, out=A)
    return A


def seed_sprinkle(size, rng, noise_amp=0.1, sprinkle_n=0, sprinkle_sigma=2.0,
                  sprinkle_amp=0.8, sprinkle_radius=6, **_kw):
    """Many small blobs at random positions over a noisy background."""
    # For N=256 this gives about 180 seeds
    n_seeds = sprinkle_n or max(80, int(round(0.0027 * size * size)))
    A = np.zeros((size, size), dtype=np.float32)
    for _ in range(n_seeds):
        cx, cy = rng.integers(0, size, size=2)
        _stamp_blob(A, int(cx), int(cy), sprinkle_sigma, sprinkle_amp, sprinkle_radius)
    A += (noise_amp * rng.random((size, size))).astype(np.float32)
    np.clip(A, 0, 1, out=A)
    return A


def seed_primordia(size, rng, sprinkle_sigma=2.0, sprinkle_amp=0.8,
                   sprinkle_radius=6, **kw):
    """Sprinkle with lighter background and smaller, fainter seeds.

    Tuned defaults only replace values left at the sprinkle defaults.
    """
    kw["noise_amp"] = 0.04
    return seed_sprinkle(
        size, rng,
        sprinkle_sigma=1.6 if sprinkle_sigma == 2.0 else sprinkle_sigma,
        sprinkle_amp=0.65 if sprinkle_amp == 0.8 else sprinkle_amp,
        sprinkle_radius=5 if sprinkle_radius == 6 else sprinkle_radius,
        **kw,
    )


PATTERNS = {
    "noise": seed_noise,
    "spot": seed_spot,
    "sprinkle": seed_sprinkle,
    "primordia": seed_primordia,
}


def make_pattern(name, size, seed=1, **params):
    """Build the named pattern as a float32 field."""
    try:
        fn = PATTERNS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown pattern: {name!r}. Supported: {list(PATTERNS.keys())}"
        ) from None
    rng = np.random.default_rng(seed)
    return fn(size, rng, **params)
