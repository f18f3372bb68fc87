"""
Time Integration

dA/dt = G(K * A; mu, sigma), advanced with an explicit scheme and clamped to
[0, 1] after every step. The clamp is the only divergence guard: there is no
adaptive step control.

    Euler     1 RHS evaluation
    Midpoint  2 RHS evaluations (explicit RK2)
    RK4       4 RHS evaluations

Stage buffers come from the state's scratch cache, so a warm step only writes
into existing arrays. All arithmetic goes through `xp` (numpy or torch), the
namespace of the active backend.
"""

from .config import IntegratorKind
from .growth import GrowthEvaluator


def rhs(state, params, field, out):
    """out = G(K * field); `out` must live on the same backend as the field."""
    backend = state.backend
    potential = state.buffer("potential")
    backend.compute(potential, state.cache, params, field)
    return GrowthEvaluator(backend.xp)(potential, params, out)


def _clamp(xp, A):
    xp.clip(A, 0.0, 1.0, out=A)
    return A


def euler_step(state, params):
    xp = state.backend.xp
    A = state.field
    k1 = state.buffer("k1")
    rhs(state, params, A, k1)
    k1 *= params.dt
    A += k1
    return _clamp(xp, A)


def midpoint_step(state, params):
    xp = state.backend.xp
    dt = params.dt
    A = state.field
    k1 = state.buffer("k1")
    k2 = state.buffer("k2")
    stage = state.buffer("stage")

    rhs(state, params, A, k1)
    xp.multiply(k1, dt / 2.0, out=stage)
    stage += A
    rhs(state, params, stage, k2)
    k2 *= dt
    A += k2
    return _clamp(xp, A)


def rk4_step(state, params):
    xp = state.backend.xp
    dt = params.dt
    A = state.field
    k1 = state.buffer("k1")
    k2 = state.buffer("k2")
    k3 = state.buffer("k3")
    k4 = state.buffer("k4")
    stage = state.buffer("stage")

    rhs(state, params, A, k1)
    xp.multiply(k1, dt / 2.0, out=stage)
    stage += A
    rhs(state, params, stage, k2)
    xp.multiply(k2, dt / 2.0, out=stage)
    stage += A
    rhs(state, params, stage, k3)
    xp.multiply(k3, dt, out=stage)
    stage += A
    rhs(state, params, stage, k4)

    # k1 + 2*k2 + 2*k3 + k4, accumulated in k1
    k2 *= 2.0
    k3 *= 2.0
    k1 += k2
    k1 += k3
    k1 += k4
    k1 *= dt / 6.0
    A += k1
    return _clamp(xp, A)


INTEGRATORS = {
    IntegratorKind.EULER: euler_step,
    IntegratorKind.MIDPOINT: midpoint_step,
    IntegratorKind.RK4: rk4_step,
}


def integrate_step(state, params, integrator="euler"):
    """Advance the field one step in place with the chosen scheme."""
    INTEGRATORS[IntegratorKind.parse(integrator)](state, params)
    return state
