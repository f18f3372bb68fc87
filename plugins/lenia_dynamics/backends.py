"""
Convolution Backends

Every backend computes the periodic convolution U = K * A into a caller
supplied buffer. Backends are stateless strategy objects; whatever they
derive (kernel spectrum, transform plans, stencil, scratch) lives in a typed
cache record held by the simulation state, keyed by a value snapshot of
(grid size, kernel spec) and rebuilt lazily when the key changes.

    FrequencyDomain - scipy.fft circular convolution, allocation-free when warm
    DirectSpatial   - threaded direct summation over the stencil (ground truth)
    DeviceResident  - torch FFT on a device, see device.py
"""

import logging
import os
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

import numpy as np
import scipy.fft as sp_fft

from .errors import InvariantViolation
from .kernels import build_periodic, build_stencil

logger = logging.getLogger(__name__)

# Worker threads for scipy.fft transforms and direct summation
_FFT_WORKERS = os.cpu_count() or 1


def set_fft_workers(n):
    """Set the thread count used by host transforms (call once at startup)."""
    global _FFT_WORKERS
    _FFT_WORKERS = max(1, int(n))
    return _FFT_WORKERS


def get_fft_workers():
    return _FFT_WORKERS


@dataclass(frozen=True)
class CacheKey:
    """Grid size plus a deep-copied kernel spec, compared by value."""
    size: int
    kernel: Any

    @classmethod
    def of(cls, size, spec):
        return cls(size=int(size), kernel=spec.snapshot())

    def matches(self, size, spec):
        return self.size == size and self.kernel == spec


@dataclass
class TransformPlan:
    """In-place c2c 2D transform over a fixed complex64 buffer shape."""
    shape: tuple

    def forward(self, buf):
        return sp_fft.fft2(buf, overwrite_x=True, workers=_FFT_WORKERS)

    def inverse(self, buf):
        return sp_fft.ifft2(buf, overwrite_x=True, workers=_FFT_WORKERS)


@dataclass
class FrequencyDomainCache:
    key: CacheKey
    kernel_hat: np.ndarray
    plan: TransformPlan
    spectrum: np.ndarray


@dataclass
class DirectSpatialCache:
    key: CacheKey
    stencil: np.ndarray


class ConvolutionBackend(ABC):
    """Base class for convolution strategies."""

    backend_name = ""   # e.g. "fft"
    backend_label = ""  # e.g. "Frequency domain"
    xp = np             # array namespace used by growth/integrators
    is_host = True

    @abstractmethod
    def compute(self, out, cache, params, field):
        """Write K * field into `out` (same shape); return `out`."""

    def empty_like(self, field):
        return np.empty_like(field)

    def to_host(self, field):
        """Return a numpy view/copy of a field held by this backend."""
        return field

    def __repr__(self):
        return f"{type(self).__name__}()"


def grid_size(field, spec):
    """Return N for a square N x N field, checking N > 2*radius."""
    if field.ndim != 2 or field.shape[0] != field.shape[1]:
        raise InvariantViolation(f"Only square grids are supported, got {tuple(field.shape)}")
    size = int(field.shape[0])
    if size <= 2 * spec.radius:
        raise InvariantViolation(
            f"Grid size {size} must be larger than 2*radius ({2 * spec.radius})"
        )
    return size


class FrequencyDomain(ConvolutionBackend):
    """Circular convolution by pointwise multiplication in Fourier space."""

    backend_name = "fft"
    backend_label = "Frequency domain"

    def prepare(self, cache, params, field) -> FrequencyDomainCache:
        """Return the warm cache record, rebuilding it on a key mismatch."""
        size = grid_size(field, params.kernel)
        rec = cache.convolution
        if isinstance(rec, FrequencyDomainCache) and rec.key.matches(size, params.kernel):
            return rec

        logger.debug("Rebuilding FFT cache for N=%d radius=%d",
                     size, params.kernel.radius)
        K = build_periodic(params.kernel, size)
        kernel_hat = sp_fft.fft2(K.astype(np.complex64), workers=_FFT_WORKERS)
        rec = FrequencyDomainCache(
            key=CacheKey.of(size, params.kernel),
            kernel_hat=kernel_hat.astype(np.complex64, copy=False),
            plan=TransformPlan(shape=(size, size)),
            spectrum=np.empty((size, size), dtype=np.complex64),
        )
        cache.convolution = rec
        return rec

    def compute(self, out, cache, params, field):
        rec = self.prepare(cache, params, field)
        buf = rec.spectrum
        buf[...] = field
        # overwrite_x on a contiguous complex64 buffer transforms in place
        buf = rec.plan.forward(buf)
        np.multiply(buf, rec.kernel_hat, out=buf)
        buf = rec.plan.inverse(buf)
        np.copyto(out, buf.real)
        return out


def _row_blocks(n, workers):
    """Split range(n) into at most `workers` contiguous [start, stop) blocks."""
    workers = max(1, min(workers, n))
    edges = np.linspace(0, n, workers + 1).astype(int)
    return [(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]


class DirectSpatial(ConvolutionBackend):
    """Direct periodic summation over the dense stencil.

    O(N^2 R^2): meant for validation and small kernels. Output row blocks are
    disjoint and the input is read-only, so workers need no locking.
    """

    backend_name = "direct"
    backend_label = "Direct spatial"

    def prepare(self, cache, params, field) -> DirectSpatialCache:
        size = grid_size(field, params.kernel)
        rec = cache.convolution
        if isinstance(rec, DirectSpatialCache) and rec.key.kernel == params.kernel:
            return rec
        logger.debug("Rebuilding stencil for radius=%d", params.kernel.radius)
        rec = DirectSpatialCache(
            key=CacheKey.of(size, params.kernel),
            stencil=build_stencil(params.kernel),
        )
        cache.convolution = rec
        return rec

    def compute(self, out, cache, params, field):
        stencil = self.prepare(cache, params, field).stencil
        n, m = field.shape
        r = stencil.shape[0] // 2
        padded = np.pad(field, r, mode="wrap")
        taps = [(di, dj, stencil[di, dj])
                for di in range(2 * r + 1)
                for dj in range(2 * r + 1)
                if stencil[di, dj] != 0]

        def _rows(start, stop):
            acc = out[start:stop]
            acc.fill(0)
            tmp = np.empty_like(acc)
            for di, dj, w in taps:
                np.multiply(padded[start + di:stop + di, dj:dj + m], w, out=tmp)
                acc += tmp

        blocks = _row_blocks(n, _FFT_WORKERS)
        if len(blocks) == 1:
            _rows(*blocks[0])
            return out
        with ThreadPoolExecutor(max_workers=len(blocks)) as pool:
            # list() re-raises worker exceptions
            list(pool.map(lambda b: _rows(*b), blocks))
        return out
