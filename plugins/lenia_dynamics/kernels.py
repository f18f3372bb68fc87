"""
Lenia Kernel Construction

Builds the normalized, radially symmetric ring-mixture kernel in two layouts:

- build_periodic: full N x N kernel with its center at index (0, 0), the
  layout a circular FFT convolution expects (no ifftshift needed).
- build_stencil: dense (2R+1) x (2R+1) stencil centered at its middle cell,
  used by direct spatial summation.

Both evaluate sum_k w_k * exp(-0.5 * ((r/R - c_k) / s_k)^2) inside the disk
r <= R and normalize to sum 1 so convolution preserves total mass.
"""

import numpy as np

from .errors import InvariantViolation


def _bell(x, center, width):
    """Gaussian bell curve"""
    return np.exp(-0.5 * ((x - center) / width) ** 2)


def check_spec(spec):
    """Raise InvariantViolation if the ring sequences are inconsistent."""
    n = len(spec.rings)
    if n < 1:
        raise InvariantViolation("KernelSpec needs at least one ring")
    if len(spec.ring_widths) != n or len(spec.ring_weights) != n:
        raise InvariantViolation(
            f"KernelSpec ring sequences differ in length: rings={n}, "
            f"ring_widths={len(spec.ring_widths)}, "
            f"ring_weights={len(spec.ring_weights)}"
        )
    if any(w <= 0 for w in spec.ring_widths):
        raise InvariantViolation(
            f"KernelSpec ring_widths must be positive: {spec.ring_widths!r}"
        )
    if spec.radius < 1:
        raise InvariantViolation(f"KernelSpec radius must be >= 1: {spec.radius}")


def _ring_mixture(rr, spec):
    """Evaluate the ring profile sum at normalized radii rr (float64)."""
    values = np.zeros_like(rr)
    for center, width, weight in zip(spec.rings, spec.ring_widths, spec.ring_weights):
        values += weight * _bell(rr, center, width)
    return values


def _disk_offsets(radius):
    """Integer offsets (dy, dx) inside the disk and their normalized radius."""
    y, x = np.ogrid[-radius:radius + 1, -radius:radius + 1]
    dist2 = x * x + y * y
    inside = dist2 <= radius * radius
    dy, dx = np.nonzero(inside)
    rr = np.sqrt(dist2[inside].astype(np.float64)) / radius
    return dy - radius, dx - radius, rr


def _normalize(K):
    total = float(K.sum(dtype=np.float64))
    if not total > 0:
        raise InvariantViolation(
            f"Kernel sum is {total}; check KernelSpec ring weights"
        )
    K /= np.float32(total)
    return K


def build_periodic(spec, size):
    """Return the size x size periodic kernel (float32), center at (0, 0).

    Only the O(R^2) disk support is evaluated; everything else is zero.
    """
    check_spec(spec)
    if size <= 2 * spec.radius:
        raise InvariantViolation(
            f"Grid size {size} must be larger than 2*radius ({2 * spec.radius})"
        )

    dy, dx, rr = _disk_offsets(spec.radius)
    K = np.zeros((size, size), dtype=np.float32)
    # Negative offsets wrap to the far edge of the array
    K[dy % size, dx % size] = _ring_mixture(rr, spec)
    return _normalize(K)


def build_stencil(spec):
    """Return the (2R+1) x (2R+1) centered stencil (float32)."""
    check_spec(spec)
    R = spec.radius
    dy, dx, rr = _disk_offsets(R)
    K = np.zeros((2 * R + 1, 2 * R + 1), dtype=np.float32)
    K[dy + R, dx + R] = _ring_mixture(rr, spec)
    return _normalize(K)
