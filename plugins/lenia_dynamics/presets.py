"""
Lenia Parameter Presets

Each preset bundles a kernel, growth mapping, time step, integrator, initial
pattern and optional homeostasis known to produce interesting, stable
dynamics. make_preset turns one into a ready-to-run (state, params,
integrator) triple.
"""

from .config import FeedbackSpec, KernelSpec, SimulationParameters
from .errors import ConfigurationError
from .feedback import auto_calibrate
from .simulate import initialize

PRESETS = {
    "default": {
        "name": "Lenia Spot",
        "description": "Two-ring kernel grown from a single centered blob",
        "radius": 13,
        "rings": [0.45, 0.75], "ring_widths": [0.15, 0.12], "ring_weights": [1.0, 0.7],
        "growth": "gaussian", "mu": 0.15, "sigma": 0.015, "dt": 0.10,
        "integrator": "midpoint",
        "pattern": "spot", "pattern_params": {"noise_amp": 0.05},
        "feedback": None,
        "autocalibrate": True,
    },
    "primordia": {
        "name": "Primordia",
        "description": "Fragmented field of many small structures",
        "radius": 9,
        "rings": [0.25, 0.52, 0.80], "ring_widths": [0.08, 0.10, 0.12],
        "ring_weights": [1.0, 0.65, 0.45],
        "growth": "bump", "mu": 0.09, "sigma": 0.055, "dt": 0.045,
        "integrator": "midpoint",
        "pattern": "primordia",
        "pattern_params": {"noise_amp": 0.05, "sprinkle_sigma": 1.8,
                           "sprinkle_amp": 0.75, "sprinkle_radius": 6},
        "feedback": {"rho": 0.12, "kappa": 0.9, "mode": "additive", "period": 2},
        "autocalibrate": True,
    },
    "sustain": {
        "name": "Sustain",
        "description": "Self-sustaining demo: resists extinction and saturation",
        "radius": 11,
        "rings": [0.30, 0.60, 0.85], "ring_widths": [0.10, 0.12, 0.10],
        "ring_weights": [1.0, 0.7, 0.35],
        "growth": "bump", "mu": 0.10, "sigma": 0.060, "dt": 0.045,
        "integrator": "midpoint",
        "pattern": "sprinkle",
        "pattern_params": {"noise_amp": 0.04, "sprinkle_sigma": 2.0,
                           "sprinkle_amp": 0.85, "sprinkle_radius": 7},
        "feedback": {"rho": 0.12, "kappa": 0.8, "mode": "additive", "period": 2},
        "autocalibrate": True,
    },
    "noisy": {
        "name": "Noisy",
        "description": "Structure emerging from strong uniform noise",
        "radius": 11,
        "rings": [0.35, 0.70], "ring_widths": [0.10, 0.12], "ring_weights": [1.0, 0.8],
        "growth": "bump", "mu": 0.12, "sigma": 0.060, "dt": 0.06,
        "integrator": "euler",
        "pattern": "noise", "pattern_params": {"noise_amp": 0.22},
        "feedback": {"rho": 0.10, "kappa": 0.6, "mode": "additive", "period": 1},
        "autocalibrate": True,
    },
}

PRESET_ORDER = ["default", "primordia", "sustain", "noisy"]


def get_preset(name):
    """Get a preset by name. Returns None if not found."""
    return PRESETS.get(name)


def list_presets():
    """Return list of (key, name, description) for presets."""
    return [(k, PRESETS[k]["name"], PRESETS[k]["description"])
            for k in PRESET_ORDER if k in PRESETS]


def preset_params(preset):
    """Build SimulationParameters from a preset dict."""
    fb = preset.get("feedback")
    return SimulationParameters(
        kernel=KernelSpec(
            radius=preset["radius"],
            rings=list(preset["rings"]),
            ring_widths=list(preset["ring_widths"]),
            ring_weights=list(preset["ring_weights"]),
        ),
        growth=preset.get("growth", "gaussian"),
        mu=preset["mu"],
        sigma=preset["sigma"],
        dt=preset["dt"],
        feedback=FeedbackSpec(**fb) if fb else None,
    )


def make_preset(name, size=256, seed=1, backend="fft", device=None):
    """Create (state, params, integrator) from a named preset."""
    preset = get_preset(name)
    if preset is None:
        raise ConfigurationError(
            f"Unknown preset: {name!r}. Supported: {PRESET_ORDER}"
        )
    st = initialize(size, preset["pattern"], seed=seed, backend=backend,
                    device=device, **preset.get("pattern_params", {}))
    params = preset_params(preset)
    if preset.get("autocalibrate"):
        auto_calibrate(st, params, target=params.mu)
    return st, params, preset["integrator"]
