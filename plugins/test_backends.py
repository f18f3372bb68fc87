"""
Convolution backend tests.

Verifies:
1. FFT and direct summation agree (convolution and one Euler step)
2. Mass preservation of the normalized kernel
3. FFT cache reuse when warm and value-based invalidation on in-place edits
4. Direct backend gives the same answer single- and multi-threaded
"""

import numpy as np
import pytest

from lenia_dynamics import (
    DirectSpatial, FrequencyDomain, InvariantViolation, KernelSpec, SimulationParameters,
    get_fft_workers, initialize, set_fft_workers, step,
)
from lenia_dynamics.backends import FrequencyDomainCache
from lenia_dynamics.state import StateCache


def _params(**kw):
    spec = KernelSpec(radius=5, rings=[0.5], ring_widths=[0.2], ring_weights=[1.0])
    return SimulationParameters(kernel=spec, growth="gaussian", mu=0.15, sigma=0.02,
                                dt=0.1, **kw)


@pytest.fixture
def field():
    rng = np.random.default_rng(3)
    return rng.random((48, 48)).astype(np.float32)


def test_fft_matches_direct_convolution(field):
    params = _params()
    u_fft = FrequencyDomain().compute(np.empty_like(field), StateCache(), params, field)
    u_dir = DirectSpatial().compute(np.empty_like(field), StateCache(), params, field)
    assert np.abs(u_fft - u_dir).max() < 1e-4


def test_convolution_preserves_mass(field):
    params = _params()
    for backend in (FrequencyDomain(), DirectSpatial()):
        U = backend.compute(np.empty_like(field), StateCache(), params, field)
        assert float(U.sum()) == pytest.approx(float(field.sum()), rel=1e-4)


def test_impulse_response_is_kernel():
    """Convolving a delta at (0, 0) reproduces the periodic kernel."""
    from lenia_dynamics import build_periodic
    params = _params()
    delta = np.zeros((32, 32), dtype=np.float32)
    delta[0, 0] = 1.0
    U = FrequencyDomain().compute(np.empty_like(delta), StateCache(), params, delta)
    np.testing.assert_allclose(U, build_periodic(params.kernel, 32), atol=1e-6)


def test_one_euler_step_fft_vs_direct():
    params = _params()
    st_fft = initialize(64, "spot", seed=7, backend="fft")
    st_dir = initialize(64, "spot", seed=7, backend="direct")
    np.testing.assert_array_equal(st_fft.field, st_dir.field)

    step(st_fft, params, "euler")
    step(st_dir, params, "euler")
    err = float(np.mean(np.abs(st_fft.field - st_dir.field)))
    assert err < 2e-2, f"FFT vs direct MAE too large: {err}"


def test_fft_cache_reused_when_warm(field):
    params = _params()
    cache = StateCache()
    backend = FrequencyDomain()
    out = np.empty_like(field)

    backend.compute(out, cache, params, field)
    rec = cache.convolution
    assert isinstance(rec, FrequencyDomainCache)
    kernel_hat, spectrum = rec.kernel_hat, rec.spectrum

    # Equal-valued but distinct params object still hits the cache
    backend.compute(out, cache, _params(), field)
    assert cache.convolution is rec
    assert rec.kernel_hat is kernel_hat
    assert rec.spectrum is spectrum


def test_fft_cache_invalidated_by_in_place_edit():
    params = _params()
    st = initialize(64, "spot", seed=2, backend="fft")
    U = np.empty_like(st.field)

    st.backend.compute(U, st.cache, params, st.field)
    old_hat = st.cache.convolution.kernel_hat
    assert st.cache.convolution.key.kernel is not params.kernel, \
        "Cached spec must not alias the live spec"
    before = U.copy()

    params.kernel.ring_weights[0] += 0.25
    params.kernel.rings.append(0.9)
    params.kernel.ring_widths.append(0.1)
    params.kernel.ring_weights.append(0.5)
    st.backend.compute(U, st.cache, params, st.field)
    assert st.cache.convolution.kernel_hat is not old_hat
    assert not np.allclose(before, U)


def test_fft_cache_invalidated_by_grid_size():
    params = _params()
    cache = StateCache()
    backend = FrequencyDomain()
    a = np.random.default_rng(0).random((32, 32)).astype(np.float32)
    b = np.random.default_rng(0).random((40, 40)).astype(np.float32)
    backend.compute(np.empty_like(a), cache, params, a)
    rec = cache.convolution
    backend.compute(np.empty_like(b), cache, params, b)
    assert cache.convolution is not rec
    assert cache.convolution.spectrum.shape == (40, 40)


def test_direct_stencil_cached_and_invalidated(field):
    params = _params()
    cache = StateCache()
    backend = DirectSpatial()
    backend.compute(np.empty_like(field), cache, params, field)
    stencil = cache.convolution.stencil
    backend.compute(np.empty_like(field), cache, params, field)
    assert cache.convolution.stencil is stencil
    params.kernel.ring_widths[0] = 0.3
    backend.compute(np.empty_like(field), cache, params, field)
    assert cache.convolution.stencil is not stencil


def test_direct_thread_count_does_not_change_result(field):
    params = _params()
    saved = get_fft_workers()
    try:
        set_fft_workers(1)
        single = DirectSpatial().compute(np.empty_like(field), StateCache(), params, field)
        set_fft_workers(7)
        multi = DirectSpatial().compute(np.empty_like(field), StateCache(), params, field)
    finally:
        set_fft_workers(saved)
    np.testing.assert_array_equal(single, multi)


@pytest.mark.parametrize("backend", [FrequencyDomain, DirectSpatial])
def test_non_square_grid_is_invariant_violation(backend):
    with pytest.raises(InvariantViolation, match="square"):
        backend().compute(np.empty((32, 40), np.float32), StateCache(),
                          _params(), np.zeros((32, 40), np.float32))
