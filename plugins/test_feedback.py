"""
Homeostasis and calibration tests.

Verifies:
1. Additive and rescale feedback move mean(A) toward rho
2. Period gating via the state's step counter
3. Unsupported modes / statistics raise ConfigurationError
4. auto_calibrate brings the potential statistic closer to mu
"""

import numpy as np
import pytest

from lenia_dynamics import (
    ConfigurationError, FeedbackSpec, KernelSpec, SimulationParameters,
    apply_feedback, auto_calibrate, initialize, step,
)


def _state(value=0.05, size=32):
    st = initialize(size, "noise", seed=1)
    st.field[:] = value
    return st


def test_additive_feedback_nudges_toward_target():
    st = _state(0.05)
    apply_feedback(st, FeedbackSpec(rho=0.12, kappa=0.5, mode="additive"), dt=0.1)
    expected = 0.05 + 0.1 * 0.5 * (0.12 - 0.05)
    assert float(st.field.mean()) == pytest.approx(expected, abs=1e-6)

    st = _state(0.4)
    apply_feedback(st, FeedbackSpec(rho=0.12, kappa=0.5, mode="additive"), dt=0.1)
    assert float(st.field.mean()) < 0.4


def test_rescale_feedback_is_bounded():
    spec = FeedbackSpec(rho=0.12, mode="rescale", clamp_scale=(0.5, 2.0))
    st = _state(0.03)
    apply_feedback(st, spec, dt=0.1)
    # 0.12 / 0.03 = 4, clamped to 2
    assert float(st.field.mean()) == pytest.approx(0.06, abs=1e-6)

    st = _state(0.1)
    apply_feedback(st, spec, dt=0.1)
    assert float(st.field.mean()) == pytest.approx(0.12, abs=1e-6)


def test_rescale_on_empty_field_stays_empty_and_finite():
    st = _state(0.0)
    apply_feedback(st, FeedbackSpec(mode="rescale"), dt=0.1)
    assert np.all(st.field == 0.0)


def test_feedback_result_is_clamped():
    st = _state(0.99)
    st.field[0, 0] = 1.0
    apply_feedback(st, FeedbackSpec(rho=0.9, mode="rescale", clamp_scale=(0.5, 2.0)), dt=1.0)
    assert st.field.max() <= 1.0


def test_period_gates_application():
    spec = FeedbackSpec(rho=0.5, kappa=1.0, mode="additive", period=3)
    st = _state(0.1)
    means = []
    for _ in range(6):
        apply_feedback(st, spec, dt=0.1)
        means.append(float(st.field.mean()))
    assert st.cache.feedback_counter == 6
    # Acts on calls 3 and 6 only
    assert means[0] == means[1] == pytest.approx(0.1)
    assert means[2] > means[1]
    assert means[3] == means[4] == pytest.approx(means[2])
    assert means[5] > means[4]


def test_period_below_one_is_clamped():
    spec = FeedbackSpec(rho=0.5, kappa=1.0, mode="additive", period=0)
    st = _state(0.1)
    apply_feedback(st, spec, dt=0.1)
    assert float(st.field.mean()) > 0.1


def test_unsupported_mode_raises():
    st = _state(0.1)
    with pytest.raises(ConfigurationError, match="'proportional'"):
        apply_feedback(st, FeedbackSpec(mode="proportional"), dt=0.1)
    assert st.cache.feedback_counter == 0


def test_step_applies_configured_feedback():
    spec = KernelSpec(radius=5, rings=[0.5], ring_widths=[0.2], ring_weights=[1.0])
    params = SimulationParameters(kernel=spec, mu=0.15, sigma=0.02, dt=0.1,
                                  feedback=FeedbackSpec(mode="additive", period=2))
    st = initialize(32, "noise", seed=1)
    step(st, params)
    step(st, params)
    assert st.cache.feedback_counter == 2


def _calib_params():
    spec = KernelSpec(radius=9, rings=[0.45, 0.75], ring_widths=[0.15, 0.12],
                      ring_weights=[1.0, 0.7])
    return SimulationParameters(kernel=spec, growth="gaussian", mu=0.15, sigma=0.015, dt=0.1)


def _potential_stat(st, params, statistic):
    U = np.empty_like(st.field)
    st.backend.compute(U, st.cache, params, st.field)
    return float(np.mean(U)) if statistic == "mean" else float(np.median(U))


@pytest.mark.parametrize("statistic", ["mean", "median"])
def test_auto_calibrate_improves_targeting(statistic):
    params = _calib_params()
    st = initialize(64, "noise", seed=11)
    before = _potential_stat(st, params, statistic)

    result = auto_calibrate(st, params, statistic=statistic)

    after = _potential_stat(st, params, statistic)
    assert abs(after - params.mu) < abs(before - params.mu)
    assert result.value == pytest.approx(before, rel=1e-4)
    assert 0.25 <= result.scale <= 4.0
    assert st.field.min() >= 0.0 and st.field.max() <= 1.0


def test_auto_calibrate_respects_scale_bounds_and_target():
    params = _calib_params()
    st = initialize(64, "noise", seed=2, noise_amp=0.01)
    result = auto_calibrate(st, params, clamp_scale=(0.5, 2.0))
    assert result.scale == pytest.approx(2.0)

    st = initialize(64, "noise", seed=2)
    result = auto_calibrate(st, params, target=0.075)
    assert result.scale == pytest.approx(0.075 / result.value, rel=1e-5)


def test_auto_calibrate_resets_feedback_counter():
    params = _calib_params()
    st = initialize(64, "noise", seed=3)
    st.cache.feedback_counter = 5
    auto_calibrate(st, params)
    assert st.cache.feedback_counter == 0


def test_auto_calibrate_unknown_statistic():
    st = initialize(32, "noise", seed=3)
    field = st.field.copy()
    with pytest.raises(ConfigurationError, match="'max'"):
        auto_calibrate(st, _calib_params(), statistic="max")
    np.testing.assert_array_equal(st.field, field)
