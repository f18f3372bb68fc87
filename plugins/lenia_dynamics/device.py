"""
Device-Resident Convolution (torch)

Mirrors the FrequencyDomain backend with the field, kernel spectrum and
transform buffers held on a torch device. Two device-specific concerns:

1. Inverse-transform normalization. Device FFT libraries do not agree on
   whether ifft(fft(x)) returns x, N^2 * x or something else. The factor is
   probed once per grid size with a unit impulse and cached as
   `DeviceResidentCache.ifft_scale`.

2. Plans. The fast path transforms into preallocated buffers (`out=`). If
   setting that up fails, the backend keeps working on an allocating
   per-call path and marks the cache `degraded`.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import torch

from .backends import CacheKey, ConvolutionBackend, grid_size
from .errors import DeviceUnavailable
from .kernels import build_periodic

logger = logging.getLogger(__name__)


def has_device():
    """True when a CUDA device is usable."""
    return torch.cuda.is_available()


def resolve_device(device=None):
    """Return a torch.device, raising DeviceUnavailable if it cannot run.

    With device=None the default accelerator (cuda) is required.
    """
    if device is None:
        if not has_device():
            raise DeviceUnavailable(
                "Device backend requested but no CUDA device is available"
            )
        return torch.device("cuda")
    try:
        dev = torch.device(device)
    except (RuntimeError, TypeError) as e:
        raise DeviceUnavailable(f"Invalid torch device: {device!r}") from e
    if dev.type == "cuda" and not has_device():
        raise DeviceUnavailable(
            f"Device {device!r} requested but CUDA is not available"
        )
    if dev.type == "mps" and not torch.backends.mps.is_available():
        raise DeviceUnavailable(f"Device {device!r} requested but MPS is not available")
    return dev


def select_ifft_scale(observed, size, target=1.0):
    """Pick the factor that maps the observed impulse round trip to `target`.

    Candidates in order: unity (library normalizes), 1/N^2 (library does not
    normalize), target/observed (anything else).
    """
    n2 = float(size * size)
    if abs(observed - target) < 1e-2:
        return 1.0
    if abs(observed - n2) < 0.05 * n2:
        return 1.0 / n2
    if observed != 0:
        return target / observed
    return 1.0


def probe_ifft_scale(size, device):
    """Round-trip a unit impulse through the device FFT and pick the scale."""
    impulse = torch.zeros((size, size), dtype=torch.float32, device=device)
    impulse[0, 0] = 1.0
    back = torch.fft.ifft2(torch.fft.fft2(impulse))
    observed = float(back[0, 0].real.item())
    scale = select_ifft_scale(observed, size)
    logger.debug("Device ifft probe N=%d observed=%g scale=%g", size, observed, scale)
    return scale


@dataclass
class DeviceResidentCache:
    key: CacheKey
    kernel_hat: Any
    ifft_scale: float
    ifft_scale_size: int
    use_plans: bool = False
    degraded: bool = False
    spectrum: Optional[Any] = None
    result: Optional[Any] = None


class DeviceResident(ConvolutionBackend):
    """FFT convolution on a torch device."""

    backend_name = "device"
    backend_label = "Device resident"
    xp = torch
    is_host = False

    def __init__(self, device=None):
        self.device = resolve_device(device)

    def empty_like(self, field):
        return torch.empty_like(field)

    def to_host(self, field):
        return field.detach().cpu().numpy()

    def to_device(self, array):
        """Deep-copy a host array into a float32 tensor on this device."""
        return torch.tensor(np.asarray(array, dtype=np.float32), device=self.device)

    def _build_plans(self, rec, field):
        """Allocate transform buffers and smoke-test the out= path."""
        spectrum = torch.empty(field.shape, dtype=torch.complex64, device=field.device)
        result = torch.empty_like(spectrum)
        torch.fft.fft2(field, out=spectrum)
        torch.fft.ifft2(spectrum, out=result)
        rec.spectrum = spectrum
        rec.result = result
        rec.use_plans = True

    def prepare(self, cache, params, field) -> DeviceResidentCache:
        size = grid_size(field, params.kernel)
        rec = cache.convolution
        if (isinstance(rec, DeviceResidentCache)
                and rec.key.matches(size, params.kernel)
                and rec.ifft_scale_size == size):
            return rec

        K = torch.from_numpy(build_periodic(params.kernel, size)).to(field.device)
        kernel_hat = torch.fft.fft2(K)

        # Normalization depends only on N; reuse a previous probe when possible
        if isinstance(rec, DeviceResidentCache) and rec.ifft_scale_size == size:
            scale = rec.ifft_scale
        else:
            scale = probe_ifft_scale(size, field.device)

        rec = DeviceResidentCache(
            key=CacheKey.of(size, params.kernel),
            kernel_hat=kernel_hat,
            ifft_scale=scale,
            ifft_scale_size=size,
        )
        try:
            self._build_plans(rec, field)
        except Exception as e:
            rec.degraded = True
            logger.warning(
                "Device transform plans unavailable (%s); "
                "falling back to allocating per-call transforms", e,
            )
        cache.convolution = rec
        return rec

    def compute(self, out, cache, params, field):
        rec = self.prepare(cache, params, field)
        if rec.use_plans:
            torch.fft.fft2(field, out=rec.spectrum)
            rec.spectrum.mul_(rec.kernel_hat)
            torch.fft.ifft2(rec.spectrum, out=rec.result)
            torch.mul(rec.result.real, rec.ifft_scale, out=out)
        else:
            spectrum = torch.fft.fft2(field)
            spectrum *= rec.kernel_hat
            result = torch.fft.ifft2(spectrum)
            torch.mul(result.real, rec.ifft_scale, out=out)
        return out

    def __repr__(self):
        return f"DeviceResident(device={str(self.device)!r})"
