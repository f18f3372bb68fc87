"""
Simulation State

Owns the field, the active convolution backend and every piece of derived
data the engine keeps between calls. The cache is a typed record:

    convolution      - backend-specific record (FFT spectrum/plans, stencil,
                       device spectrum/normalization), keyed by grid + kernel
    scratch          - integrator stage buffers, allocated on first use
    feedback_counter - step counter for periodic feedback

Everything in the cache is safe to drop at any time; it is rebuilt lazily.
A state is not safe to share between threads without external locking.
"""

from dataclasses import dataclass, field as dc_field, fields
from typing import Any, Optional

import numpy as np


@dataclass
class IntegratorScratch:
    """Per-stage work buffers, shaped like the field."""
    potential: Optional[Any] = None
    k1: Optional[Any] = None
    k2: Optional[Any] = None
    k3: Optional[Any] = None
    k4: Optional[Any] = None
    stage: Optional[Any] = None
    calibration: Optional[Any] = None

    def get(self, name, backend, like):
        buf = getattr(self, name)
        if buf is None or buf.shape != like.shape:
            buf = backend.empty_like(like)
            setattr(self, name, buf)
        return buf

    def clear(self):
        for f in fields(self):
            setattr(self, f.name, None)


@dataclass
class StateCache:
    convolution: Optional[Any] = None
    scratch: IntegratorScratch = dc_field(default_factory=IntegratorScratch)
    feedback_counter: int = 0

    def clear(self):
        self.convolution = None
        self.scratch.clear()
        self.feedback_counter = 0


class SimulationState:
    """Field + backend + derived cache for one simulation."""

    def __init__(self, field, backend):
        self.field = field
        self.backend = backend
        self.cache = StateCache()
        self.generation = 0

    @property
    def backend_name(self):
        return self.backend.backend_name

    @property
    def size(self):
        return self.field.shape[0]

    def buffer(self, name):
        """Scratch buffer `name`, allocated like the field on first use."""
        return self.cache.scratch.get(name, self.backend, self.field)

    def host_field(self):
        """Numpy copy of the field for display."""
        return np.array(self.backend.to_host(self.field), dtype=np.float32, copy=True)

    @property
    def stats(self):
        """Return current field statistics."""
        A = self.field
        return {
            "generation": self.generation,
            "mass": float(A.sum()),
            "mean": float(A.mean()),
            "max": float(A.max()),
            "alive_pct": float((A > 0.01).sum()) / (A.shape[0] * A.shape[1]) * 100,
        }

    def __repr__(self):
        return (f"SimulationState(size={self.size}, backend={self.backend!r}, "
                f"generation={self.generation})")
