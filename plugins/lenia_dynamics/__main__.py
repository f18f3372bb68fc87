"""
Lenia Dynamics - Headless Runner

Usage:
    python -m lenia_dynamics [preset] [--size N] [--steps N] [--backend NAME]
                             [--device DEV] [--seed N] [--threads N] [--bench]

Examples:
    python -m lenia_dynamics
    python -m lenia_dynamics sustain --size 256 --steps 500
    python -m lenia_dynamics default --backend direct --size 128 --steps 20
    python -m lenia_dynamics primordia --backend device --bench

Backends:
    fft     - scipy.fft frequency-domain convolution (default)
    direct  - threaded direct summation (validation)
    device  - torch FFT on a device (cuda unless --device is given)

Use --list to see all available presets.
"""

import sys
import time

import numpy as np

from .backends import set_fft_workers, get_fft_workers
from .device import has_device
from .errors import LeniaError
from .presets import PRESET_ORDER, list_presets, make_preset
from .simulate import run, step


def bench(st, params, integrator, steps):
    """Time individual steps after a short warmup (fills caches)."""
    for _ in range(min(5, steps)):
        step(st, params, integrator)
    times = []
    for _ in range(steps):
        t0 = time.perf_counter()
        step(st, params, integrator)
        times.append(time.perf_counter() - t0)
    times = np.array(times) * 1000.0
    print(f"  step: median {np.median(times):.3f} ms, "
          f"min {times.min():.3f} ms, max {times.max():.3f} ms")


def main():
    preset = "default"
    size = 256
    steps = 50
    backend = "fft"
    device = None
    seed = 1
    do_bench = False

    args = sys.argv[1:]
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--size" and i + 1 < len(args):
            size = int(args[i + 1])
            i += 2
        elif arg == "--steps" and i + 1 < len(args):
            steps = int(args[i + 1])
            i += 2
        elif arg == "--backend" and i + 1 < len(args):
            backend = args[i + 1]
            i += 2
        elif arg == "--device" and i + 1 < len(args):
            device = args[i + 1]
            i += 2
        elif arg == "--seed" and i + 1 < len(args):
            seed = int(args[i + 1])
            i += 2
        elif arg == "--threads" and i + 1 < len(args):
            set_fft_workers(int(args[i + 1]))
            i += 2
        elif arg == "--bench":
            do_bench = True
            i += 1
        elif arg == "--list":
            print("\nAvailable presets:")
            for key, name, desc in list_presets():
                print(f"    {key:16s} {name:20s} {desc}")
            print()
            return
        elif arg in ("--help", "-h"):
            print(__doc__)
            return
        elif arg in PRESET_ORDER:
            preset = arg
            i += 1
        else:
            print(f"Unknown argument: {arg}")
            print("Use --list to see available presets")
            return

    print("Lenia Dynamics")
    print(f"  Preset: {preset}")
    try:
        st, params, integrator = make_preset(preset, size=size, seed=seed,
                                             backend=backend, device=device)
    except LeniaError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"  Grid: {size}x{size}, backend: {st.backend.backend_label} ({st.backend_name})")
    print(f"  FFT threads: {get_fft_workers()}, device available: {has_device()}")

    if do_bench:
        bench(st, params, integrator, steps)
        return

    t0 = time.perf_counter()
    run(st, params, steps, integrator=integrator)
    elapsed = time.perf_counter() - t0
    s = st.stats
    print(f"  {steps} steps ({integrator}) in {elapsed:.2f}s")
    print(f"  mean(A) = {s['mean']:.4f}")
    print(f"  max(A)  = {s['max']:.4f}")
    print(f"  alive   = {s['alive_pct']:.1f}%")


if __name__ == "__main__":
    main()
