"""
High-level Simulation Interface

    initialize      - new state from a named pattern and seed
    step / run      - integrate (then optional feedback), in place
    switch_backend  - move a state between convolution backends

Usage:
    from lenia_dynamics import initialize, run, SimulationParameters
    st = initialize(256, "spot", seed=42)
    run(st, SimulationParameters(), 100, integrator="midpoint")
    print(st.stats["mean"], st.stats["max"])
"""

import logging

from .backends import DirectSpatial, FrequencyDomain
from .config import Backend
from .device import DeviceResident
from .feedback import apply_feedback
from .integrators import integrate_step
from .patterns import make_pattern
from .state import SimulationState

logger = logging.getLogger(__name__)

BACKEND_CLASSES = {
    Backend.FFT: FrequencyDomain,
    Backend.DIRECT: DirectSpatial,
    Backend.DEVICE: DeviceResident,
}


def make_backend(choice, device=None):
    """Instantiate the backend strategy for `choice` (name or Backend)."""
    kind = Backend.parse(choice)
    if kind is Backend.DEVICE:
        return DeviceResident(device)
    return BACKEND_CLASSES[kind]()


def initialize(size, pattern="noise", seed=1, backend="fft", device=None,
               **pattern_params):
    """Create a size x size state initialized with `pattern`.

    The backend is resolved first so a missing device fails before any
    field is built.
    """
    strategy = make_backend(backend, device)
    A = make_pattern(pattern, size, seed=seed, **pattern_params)
    if not strategy.is_host:
        A = strategy.to_device(A)
    return SimulationState(A, strategy)


def step(state, params, integrator="euler"):
    """One integration step, then one feedback application if configured."""
    integrate_step(state, params, integrator)
    if params.feedback is not None:
        apply_feedback(state, params.feedback, params.dt)
    state.generation += 1
    return state


def run(state, params, steps, integrator="euler", observer=None):
    """Run `steps` iterations; observer(step_index, state) after each."""
    for t in range(1, steps + 1):
        step(state, params, integrator)
        if observer is not None:
            observer(t, state)
    return state


def switch_backend(state, target, device=None):
    """Move `state` to another backend.

    Host <-> host keeps the field and drops the cache. Crossing the
    host/device boundary deep-copies the field into a new state with an
    empty cache.
    """
    strategy = make_backend(target, device)

    if state.backend.is_host and strategy.is_host:
        logger.debug("Switching backend %s -> %s", state.backend.backend_label,
                     strategy.backend_label)
        state.backend = strategy
        state.cache.clear()
        return state

    logger.debug("Copying field %s -> %s", state.backend_name, strategy.backend_name)
    if strategy.is_host:
        field = state.host_field()
    else:
        field = strategy.to_device(state.backend.to_host(state.field))
    new_state = SimulationState(field, strategy)
    new_state.generation = state.generation
    return new_state
