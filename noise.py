# noise.py
"""
Deterministic fractal value noise.

Small numba-jitted primitives shared by the field renderer: a sine-dot
lattice hash, smooth value noise and a fixed-octave fbm sum. The jitted
functions can be called from Python directly and from other nopython
kernels.
"""
import math

import numpy as np
from numba import jit

from constants import NOISE_GAIN, NOISE_LACUNARITY, NOISE_OCTAVES

# --- Data Contracts ---
#
# hash21(x: float, y: float) -> float in [0, 1)
# value_noise(x: float, y: float) -> float in [0, 1)
#   - Continuous; equals hash21 at integer lattice points.
# fbm(x, y, octaves=4, lacunarity=2.0, gain=0.5) -> float in [0, 1)
#   - First octave has amplitude 0.5, so the sum stays below 1.
# fbm_grid(xs: np.ndarray, ys: np.ndarray) -> np.ndarray
#   - Elementwise fbm over broadcast-compatible arrays.


@jit(nopython=True)
def smoothstep(edge0, edge1, x):
    if edge1 == edge0:
        return 0.0 if x < edge0 else 1.0
    t = (x - edge0) / (edge1 - edge0)
    if t < 0.0:
        t = 0.0
    elif t > 1.0:
        t = 1.0
    return t * t * (3.0 - 2.0 * t)


@jit(nopython=True)
def hash21(x, y):
    h = math.sin(x * 127.1 + y * 311.7) * 43758.5453123
    return h - math.floor(h)


@jit(nopython=True)
def value_noise(x, y):
    ix = np.floor(x)
    iy = np.floor(y)
    fx = x - ix
    fy = y - iy

    a = hash21(ix, iy)
    b = hash21(ix + 1.0, iy)
    c = hash21(ix, iy + 1.0)
    d = hash21(ix + 1.0, iy + 1.0)

    ux = fx * fx * (3.0 - 2.0 * fx)
    uy = fy * fy * (3.0 - 2.0 * fy)
    return a + (b - a) * ux + (c - a) * uy * (1.0 - ux) + (d - b) * ux * uy


@jit(nopython=True)
def fbm(x, y, octaves=NOISE_OCTAVES, lacunarity=NOISE_LACUNARITY, gain=NOISE_GAIN):
    value = 0.0
    amplitude = 0.5
    frequency = 1.0
    for _ in range(octaves):
        value += amplitude * value_noise(x * frequency, y * frequency)
        amplitude *= gain
        frequency *= lacunarity
    return value


@jit(nopython=True)
def _fbm_flat(xs, ys, out):
    for i in range(xs.shape[0]):
        out[i] = fbm(xs[i], ys[i])


def fbm_grid(xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Evaluates 4-octave fbm over broadcast-compatible coordinate arrays."""
    bx, by = np.broadcast_arrays(np.asarray(xs, dtype=np.float64), np.asarray(ys, dtype=np.float64))
    flat_x = np.ascontiguousarray(bx).ravel()
    flat_y = np.ascontiguousarray(by).ravel()
    out = np.empty(flat_x.shape[0], dtype=np.float64)
    _fbm_flat(flat_x, flat_y, out)
    return out.reshape(bx.shape)
