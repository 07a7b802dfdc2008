# field.py
"""
Evaluates the implicit-surface ("metaball") field of the dot buffer.

This module defines the FieldRenderer class, which turns a DotSnapshot
into a scalar influence field over the viewport and from there into an
alpha-thresholded RGBA layer for one render pass. The per-pixel loop is a
numba-jitted kernel; each dot contributes a smoothstep falloff measured
in an aspect-corrected, velocity-aligned and elongation-stretched metric,
with fbm noise roughening the edges of fast-moving dots.
"""
import logging
import math
import time
from typing import Optional, Sequence

import numpy as np
from numba import jit

from constants import (
    ALPHA_THRESHOLD_HIGH, ALPHA_THRESHOLD_LOW, EDGE_FEATHER_BASE, EDGE_FEATHER_VELOCITY,
    NOISE_VELOCITY_OFFSET, SPATIAL_CULLING_MULTIPLIER, VELOCITY_EPSILON
)
from dots import BASELINE_PRESET, Dot, DotBuffer, DotCategory, DotSnapshot, PhysicsPreset
from noise import fbm, smoothstep

# --- Data Contracts ---
#
# class FieldRenderer:
#   - __init__(self, width: int, height: int, aspect_ratio: Optional[float] = None):
#     - Side Effects: Compiles the field kernel once. A failure is logged at
#       CRITICAL a single time and leaves self.available == False.
#
#   - sample(self, snapshot, us, vs, category_mask, preset) -> np.ndarray:
#     - Scalar field at normalized viewport points (u right, v down).
#
#   - field(self, snapshot, category_mask, preset) -> np.ndarray (H, W):
#     - Scalar field at pixel centres.
#
#   - render(self, snapshot, category_mask, color, preset) -> Optional[np.ndarray]:
#     - Outputs: (H, W, 4) float32 RGBA with the pass color in RGB and
#       smoothstep(0.7, 1.0, field) in A. None when unavailable.
#     - Invariants: an empty snapshot renders alpha 0 everywhere.


@jit(nopython=True)
def _field_kernel(us, vs, xs, ys, radii, categories, velocities, elongations,
                  category_mask, aspect_ratio, noise_frequency, noise_amplitude,
                  velocity_roughness, out):
    """
    Numba-jitted per-point field accumulation.
    Kept outside the class for Numba compatibility.
    """
    point_count = us.shape[0]
    dot_count = xs.shape[0]

    for p in range(point_count):
        u = us[p]
        v = vs[p]
        total_field = 0.0

        for i in range(dot_count):
            if ((category_mask >> categories[i]) & 1) == 0:
                continue

            dx = (u - xs[i]) * aspect_ratio
            dy = v - ys[i]
            vx = velocities[i, 0]
            vy = velocities[i, 1]
            speed = math.sqrt(vx * vx + vy * vy)
            elongation = elongations[i]

            if speed > VELOCITY_EPSILON:
                # Rotate into the velocity frame and stretch along travel.
                nx = vx / speed
                ny = vy / speed
                along = (dx * nx + dy * ny) / elongation
                across = -dx * ny + dy * nx
                distance = math.sqrt(along * along + across * across)
            else:
                distance = math.sqrt(dx * dx + dy * dy)

            effective_radius = radii[i] * max(1.0, elongation)
            if distance > effective_radius * SPATIAL_CULLING_MULTIPLIER:
                continue

            normalized_distance = distance / effective_radius
            edge_noise = fbm(u * noise_frequency + vx * NOISE_VELOCITY_OFFSET,
                             v * noise_frequency + vy * NOISE_VELOCITY_OFFSET) * noise_amplitude
            distorted_distance = normalized_distance + edge_noise * speed * velocity_roughness

            edge_feather = EDGE_FEATHER_BASE + EDGE_FEATHER_VELOCITY * speed
            total_field += 1.0 - smoothstep(0.0, edge_feather, distorted_distance)

        out[p] = total_field


def field_alpha(field_values: np.ndarray) -> np.ndarray:
    """Vectorized smoothstep(0.7, 1.0, field)."""
    t = np.clip((field_values - ALPHA_THRESHOLD_LOW) / (ALPHA_THRESHOLD_HIGH - ALPHA_THRESHOLD_LOW), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


class FieldRenderer:
    """
    Owns the compiled field kernel and the viewport it evaluates.
    """
    def __init__(self, width: int, height: int, aspect_ratio: Optional[float] = None):
        """
        Initializes the renderer and compiles its kernel.

        Args:
            width (int): Layer width in pixels.
            height (int): Layer height in pixels.
            aspect_ratio (Optional[float]): Defaults to width / height.
        """
        self.width = max(int(width), 1)
        self.height = max(int(height), 1)
        self.aspect_ratio = float(aspect_ratio) if aspect_ratio else self.width / self.height
        self.available = False
        self.render_count = 0

        # Pixel centres in normalized viewport coordinates.
        us = (np.arange(self.width, dtype=np.float64) + 0.5) / self.width
        vs = (np.arange(self.height, dtype=np.float64) + 0.5) / self.height
        grid_u, grid_v = np.meshgrid(us, vs)
        self._grid_u = grid_u.ravel()
        self._grid_v = grid_v.ravel()

        self._initialize_backend()

    def _initialize_backend(self) -> None:
        # Compile against the same array types a live snapshot carries.
        warmup = DotBuffer(capacity=1)
        warmup.append([Dot(position=(0.5, 0.5), radius=0.1, category=DotCategory.CENTRAL,
                           velocity=(0.1, 0.0), elongation=1.5)])
        start = time.perf_counter()
        try:
            self._evaluate(warmup.snapshot(), np.array([0.5]), np.array([0.5]), 1, BASELINE_PRESET)
        except Exception as e:
            logging.critical(
                f"Field kernel failed to initialize ({e}). Rendering is disabled; "
                f"no visual output will be produced."
            )
            return
        self.available = True
        logging.info(
            f"FieldRenderer ready at {self.width}x{self.height} "
            f"(aspect {self.aspect_ratio:.3f}), kernel compiled in {time.perf_counter() - start:.2f}s."
        )

    def _evaluate(self, snapshot: DotSnapshot, us: np.ndarray, vs: np.ndarray,
                  category_mask: int, preset: PhysicsPreset) -> np.ndarray:
        out = np.zeros(us.shape[0], dtype=np.float64)
        _field_kernel(
            us, vs,
            snapshot.xs, snapshot.ys, snapshot.radii, snapshot.categories,
            snapshot.velocities, snapshot.elongations,
            int(category_mask), self.aspect_ratio,
            preset.noise_frequency, preset.noise_amplitude, preset.velocity_roughness,
            out,
        )
        return out

    def sample(self, snapshot: DotSnapshot, us: Sequence[float], vs: Sequence[float],
               category_mask: int, preset: PhysicsPreset = BASELINE_PRESET) -> np.ndarray:
        """Scalar field at arbitrary normalized points in the snapshot's own frame."""
        us = np.ascontiguousarray(us, dtype=np.float64).ravel()
        vs = np.ascontiguousarray(vs, dtype=np.float64).ravel()
        if us.shape != vs.shape:
            raise ValueError(f"Sample coordinates differ in length: {us.shape[0]} vs {vs.shape[0]}.")
        return self._evaluate(snapshot, us, vs, category_mask, preset)

    def field(self, snapshot: DotSnapshot, category_mask: int,
              preset: PhysicsPreset = BASELINE_PRESET) -> np.ndarray:
        # A y-up snapshot is sampled bottom row first so the image stays upright.
        vs = 1.0 - self._grid_v if snapshot.flipped else self._grid_v
        values = self._evaluate(snapshot, self._grid_u, vs, category_mask, preset)
        return values.reshape(self.height, self.width)

    def render(self, snapshot: DotSnapshot, category_mask: int,
               color: Sequence[float], preset: PhysicsPreset = BASELINE_PRESET) -> Optional[np.ndarray]:
        if not self.available:
            return None

        start = time.perf_counter()
        alpha = field_alpha(self.field(snapshot, category_mask, preset))
        layer = np.empty((self.height, self.width, 4), dtype=np.float32)
        layer[..., :3] = np.asarray(color, dtype=np.float32)[:3]
        layer[..., 3] = alpha

        self.render_count += 1
        logging.debug(
            f"Field render #{self.render_count}: {len(snapshot)} dots, mask {category_mask:#07b}, "
            f"{(time.perf_counter() - start) * 1000:.1f}ms."
        )
        return layer
