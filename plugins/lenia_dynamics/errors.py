"""
Error taxonomy for the Lenia engine.

ConfigurationError  - bad names/modes supplied by the caller (fatal, never retried)
InvariantViolation  - kernel construction preconditions broken
DeviceUnavailable   - device backend requested without a working device
"""


class LeniaError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(LeniaError, ValueError):
    """Unknown backend, pattern, growth function, feedback mode or statistic."""


class InvariantViolation(LeniaError, ValueError):
    """Kernel spec cannot produce a valid kernel for the requested grid."""


class DeviceUnavailable(LeniaError, RuntimeError):
    """Device-resident backend requested but no functional device exists."""
