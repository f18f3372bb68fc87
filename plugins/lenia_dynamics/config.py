"""
Simulation Parameter Models

Plain-value configuration consumed by the engine on every call. Models are
pydantic so front-ends get validation and schema for free; the engine never
mutates them. KernelSpec keeps list fields so callers can edit rings in place
(caches compare snapshots by value, see backends.CacheKey).
"""

import enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from .errors import ConfigurationError


class Backend(str, enum.Enum):
    """Convolution strategy selector."""
    FFT = "fft"
    DIRECT = "direct"
    DEVICE = "device"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(_BACKEND_ALIASES.get(value, value))
        except (ValueError, TypeError):
            raise ConfigurationError(
                f"Unknown backend: {value!r}. "
                f"Supported: {[b.value for b in cls]}"
            ) from None


_BACKEND_ALIASES = {"naive": "direct", "cuda": "device"}


class IntegratorKind(str, enum.Enum):
    """Explicit time-stepping scheme, chosen per call."""
    EULER = "euler"
    MIDPOINT = "midpoint"
    RK4 = "rk4"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(_INTEGRATOR_ALIASES.get(value, value))
        except (ValueError, TypeError):
            raise ConfigurationError(
                f"Unknown integrator: {value!r}. "
                f"Supported: {[i.value for i in cls]}"
            ) from None


_INTEGRATOR_ALIASES = {"rk2": "midpoint"}


class KernelSpec(BaseModel):
    """Radially symmetric ring-mixture kernel.

    Each ring contributes weight * exp(-0.5 * ((r/R - ring) / width)^2)
    at normalized radius r/R. The built kernel is normalized to sum 1.
    """

    radius: int = Field(default=13, ge=1, description="Kernel radius in cells")
    rings: List[float] = Field(
        default_factory=lambda: [0.5],
        description="Ring centers as fractions of the radius [0-1]",
    )
    ring_widths: List[float] = Field(
        default_factory=lambda: [0.15],
        description="Gaussian width of each ring",
    )
    ring_weights: List[float] = Field(
        default_factory=lambda: [1.0],
        description="Relative weight of each ring (not normalized)",
    )

    def snapshot(self):
        """Deep copy used as a cache key; never aliases the live lists."""
        return self.model_copy(deep=True)


class FeedbackSpec(BaseModel):
    """Global mass homeostasis: nudges mean(A) toward rho.

    mode="additive": A <- clamp(A + dt*kappa*(rho - m), 0, 1)
    mode="rescale":  A <- clamp(A * clamp(rho/m, *clamp_scale), 0, 1)
    """

    rho: float = Field(default=0.12, description="Target mean density")
    kappa: float = Field(default=0.5, description="Additive gain")
    mode: str = Field(default="additive", description="'additive' or 'rescale'")
    period: int = Field(default=1, description="Apply every N steps (min 1)")
    clamp_scale: Tuple[float, float] = Field(
        default=(0.5, 2.0),
        description="Bounds on the multiplicative correction (rescale mode)",
    )


class SimulationParameters(BaseModel):
    """Per-call parameters: kernel, growth mapping and time step."""

    kernel: KernelSpec = Field(default_factory=KernelSpec)
    growth: str = Field(
        default="gaussian",
        description="Registered growth function name (see growth.GROWTH_FUNCTIONS)",
    )
    mu: float = Field(default=0.15, description="Growth center")
    sigma: float = Field(default=0.015, gt=0, description="Growth width")
    dt: float = Field(default=0.1, gt=0, description="Time step")
    feedback: Optional[FeedbackSpec] = None
