"""
Lenia Dynamics - continuous cellular automaton engine

A field A in [0, 1] evolves as dA/dt = G(K * A; mu, sigma) with a ring
mixture kernel K, periodic boundaries, explicit integrators and optional
mass homeostasis. Convolution runs in the frequency domain (scipy.fft), by
direct summation, or on a torch device.
"""

from .backends import (
    ConvolutionBackend, DirectSpatial, FrequencyDomain,
    get_fft_workers, set_fft_workers,
)
from .config import (
    Backend, FeedbackSpec, IntegratorKind, KernelSpec, SimulationParameters,
)
from .device import DeviceResident, has_device
from .errors import (
    ConfigurationError, DeviceUnavailable, InvariantViolation, LeniaError,
)
from .feedback import Calibration, FeedbackController, apply_feedback, auto_calibrate
from .growth import (
    GROWTH_FUNCTIONS, GrowthEvaluator, bump_growth, gaussian_growth,
    get_growth, register_growth,
)
from .integrators import integrate_step, rhs
from .kernels import build_periodic, build_stencil
from .patterns import PATTERNS, make_pattern
from .presets import PRESETS, get_preset, list_presets, make_preset
from .simulate import initialize, run, step, switch_backend
from .state import SimulationState

__version__ = "0.1.0"
