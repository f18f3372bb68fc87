"""
Growth Functions

Elementwise mapping from neighborhood potential U to rate of change, roughly
in [-1, 1]. Every growth function has the signature

    fn(u, mu, sigma, out, xp) -> out

and writes into `out` using only in-place operations that numpy arrays and
torch tensors share (`xp` is the array namespace: numpy or torch). That lets
the same function run on host and device fields without allocating.
"""

import numpy as np

from .errors import ConfigurationError


def gaussian_growth(u, mu, sigma, out, xp=np):
    """2 * exp(-0.5 * ((u - mu) / sigma)^2) - 1"""
    out[...] = u
    out -= mu
    out /= sigma
    out *= out
    out *= -0.5
    xp.exp(out, out=out)
    out *= 2.0
    out -= 1.0
    return out


def bump_growth(u, mu, sigma, out, xp=np):
    """2 * exp(-(|u - mu| / sigma)^4) - 1: flatter top, steeper shoulders."""
    out[...] = u
    out -= mu
    xp.abs(out, out=out)
    out /= sigma
    out *= out
    out *= out
    out *= -1.0
    xp.exp(out, out=out)
    out *= 2.0
    out -= 1.0
    return out


GROWTH_FUNCTIONS = {
    "gaussian": gaussian_growth,
    "bump": bump_growth,
}


def get_growth(name):
    """Look up a registered growth function by name."""
    try:
        return GROWTH_FUNCTIONS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown growth function: {name!r}. "
            f"Supported: {list(GROWTH_FUNCTIONS.keys())}"
        ) from None


def _check_capability(name, fn):
    """Evaluate fn on a small host array and a small torch tensor."""
    import torch

    probes = [
        (np, np.linspace(0.0, 1.0, 8, dtype=np.float32), np.empty(8, dtype=np.float32)),
        (torch, torch.linspace(0.0, 1.0, 8), torch.empty(8)),
    ]
    for xp, u, out in probes:
        try:
            result = fn(u, 0.15, 0.02, out, xp)
        except Exception as e:
            raise ConfigurationError(
                f"Growth function {name!r} failed on {xp.__name__} arrays: {e}"
            ) from e
        if result is not out:
            raise ConfigurationError(
                f"Growth function {name!r} must write into and return `out`"
            )
        if not bool(xp.isfinite(out).all()):
            raise ConfigurationError(
                f"Growth function {name!r} produced non-finite values"
            )


def register_growth(name, fn):
    """Register a custom growth function after checking it runs on both
    numpy and torch arrays."""
    _check_capability(name, fn)
    GROWTH_FUNCTIONS[name] = fn
    return fn


class GrowthEvaluator:
    """Stateless evaluator: rhs = g(U, mu, sigma) written into `out`."""

    def __init__(self, xp=np):
        self.xp = xp

    def __call__(self, potential, params, out):
        fn = get_growth(params.growth)
        return fn(potential, float(params.mu), float(params.sigma), out, self.xp)
