"""
Homeostasis and Calibration

Two robustness helpers that sit outside classic Lenia:

- apply_feedback: per-step mass controller that nudges mean(A) toward a
  target density so runs neither die out nor saturate.
- auto_calibrate: one-shot rescale of the initial field so the potential
  statistic (mean or median of K * A) lands near the growth center. Makes
  arbitrary initial conditions far less fragile.
"""

from typing import NamedTuple

import numpy as np

from .errors import ConfigurationError

_EPS = 1e-6

FEEDBACK_MODES = ("additive", "rescale")
STATISTICS = ("mean", "median")


class Calibration(NamedTuple):
    scale: float   # factor applied to the field
    value: float   # potential statistic measured before scaling


def _clamp_scalar(x, lo, hi):
    return min(max(x, lo), hi)


class FeedbackController:
    """Mass feedback gated by the state's step counter.

    The counter increments on every call; the correction runs only when
    counter % period == 0.
    """

    def apply(self, state, spec, dt):
        if spec.mode not in FEEDBACK_MODES:
            raise ConfigurationError(
                f"Unsupported feedback mode: {spec.mode!r}. "
                f"Supported: {list(FEEDBACK_MODES)}"
            )
        period = max(int(spec.period), 1)
        state.cache.feedback_counter += 1
        if state.cache.feedback_counter % period != 0:
            return state

        xp = state.backend.xp
        A = state.field
        m = float(A.mean())

        if spec.mode == "additive":
            A += dt * spec.kappa * (spec.rho - m)
        else:
            lo, hi = spec.clamp_scale
            A *= _clamp_scalar(spec.rho / max(m, _EPS), lo, hi)

        xp.clip(A, 0.0, 1.0, out=A)
        return state


def apply_feedback(state, spec, dt):
    """Apply the mass controller once (see FeedbackController)."""
    return FeedbackController().apply(state, spec, dt)


def _statistic(state, U, statistic):
    if statistic == "mean":
        return float(U.mean())
    # median needs host data
    return float(np.median(state.backend.to_host(U)))


def auto_calibrate(state, params, target=None, statistic="mean",
                   clamp_scale=(0.25, 4.0)):
    """Scale the field so statistic(K * A) is near `target` (default mu).

    Resets the feedback counter because the field changed materially.
    Returns Calibration(scale, value) with the pre-scaling statistic.
    """
    if statistic not in STATISTICS:
        raise ConfigurationError(
            f"Unknown statistic: {statistic!r}. Supported: {list(STATISTICS)}"
        )
    if target is None:
        target = params.mu

    U = state.buffer("calibration")
    state.backend.compute(U, state.cache, params, state.field)
    value = _statistic(state, U, statistic)

    lo, hi = clamp_scale
    scale = _clamp_scalar(target / max(value, _EPS), lo, hi)

    A = state.field
    A *= scale
    state.backend.xp.clip(A, 0.0, 1.0, out=A)
    state.cache.feedback_counter = 0
    return Calibration(scale=float(scale), value=value)
