# splatter.py
"""
Turns pointer impacts into clusters of splatter dots.

This module defines generate_splat, a pure function from one ImpactEvent
(plus a random source) to an ordered list of dots, and the SplatGenerator
class that owns the category parameters, presets and random source used
by the scene. Each dot inherits a jittered, rescaled copy of the impact
velocity and is placed by a one-step projectile integration under
constant gravity.
"""
import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np

from constants import (
    DEFAULT_MAX_DOTS_PER_SPLAT, FLIGHT_TIME_RANGE, GRAVITY,
    JITTER_X, JITTER_Y, MAX_DISTANCE_FACTOR, SPEED_VARIATION_RANGE,
    SURFACE_TENSION, SURFACE_TENSION_SCALE, VELOCITY_EPSILON
)
from dots import (
    BASELINE_PRESET, CATEGORY_ORDER, HEIGHTENED_PRESET, Dot, DotCategory,
    DotCategoryParameters, ImpactEvent, PhysicsPreset, parse_category_parameters
)

# --- Data Contracts ---
#
# generate_splat(impact, parameters, preset, rng, max_dots_per_splat=None) -> List[Dot]:
#   - Inputs:
#     - impact: ImpactEvent (position in [0,1]^2, force in [0,1]).
#     - parameters: Dict[DotCategory, DotCategoryParameters].
#     - preset: PhysicsPreset supplying the elongation multipliers.
#     - rng: numpy.random.Generator. Identical seed => identical output.
#   - Outputs: Central dot first, then Large, Medium, Small, Splash.
#   - Side Effects: Advances rng only.
#   - Invariants: every dot has radius > 0 and elongation >= 1. Positions
#     are inside the unit square.
#
# class SplatGenerator:
#   - __init__(self, params: Dict[str, Any]):
#     - params: the "generation" section of config.json.
#   - generate(self, impact: ImpactEvent, heightened: bool = False) -> List[Dot]


def _central_dot(impact: ImpactEvent, params: DotCategoryParameters,
                 preset: PhysicsPreset, rng: np.random.Generator) -> Dot:
    radius = rng.uniform(params.radius_min, params.radius_max)
    elongation = 1.0 + impact.speed * impact.force * preset.central_elongation
    return Dot(
        position=impact.position,
        radius=float(radius),
        category=DotCategory.CENTRAL,
        velocity=impact.velocity,
        elongation=float(max(elongation, 1.0)),
    )


def _scattered_dots(impact: ImpactEvent, category: DotCategory, params: DotCategoryParameters,
                    preset: PhysicsPreset, rng: np.random.Generator) -> List[Dot]:
    count = int(rng.integers(params.count_min, params.count_max, endpoint=True))

    cx, cy = impact.position
    ivx, ivy = impact.velocity
    speed = impact.speed
    moving = speed >= VELOCITY_EPSILON
    gx, gy = GRAVITY
    max_distance = params.distance_max * MAX_DISTANCE_FACTOR

    dots = []
    for _ in range(count):
        # Independent per-axis jitter around the scaled impact velocity.
        scale = rng.uniform(*SPEED_VARIATION_RANGE)
        pvx = ivx * scale + rng.uniform(-JITTER_X, JITTER_X)
        pvy = ivy * scale + rng.uniform(-JITTER_Y, JITTER_Y)

        flight_time = rng.uniform(*FLIGHT_TIME_RANGE)
        drop_x = 0.5 * gx * flight_time * flight_time
        drop_y = 0.5 * gy * flight_time * flight_time
        dx = pvx * flight_time + drop_x
        dy = pvy * flight_time + drop_y

        distance = math.hypot(dx, dy)
        if distance > max_distance:
            shrink = max_distance / distance
            dx *= shrink
            dy *= shrink
        x = min(max(cx + dx, 0.0), 1.0)
        y = min(max(cy + dy, 0.0), 1.0)

        # Surface tension rounds small droplets up more than large ones.
        radius = rng.uniform(params.radius_min, params.radius_max)
        radius *= 1.0 + (1.0 - radius / params.radius_max) * SURFACE_TENSION * SURFACE_TENSION_SCALE

        fvx = pvx + drop_x * 2.0
        fvy = pvy + drop_y * 2.0

        elongation = 1.0 + flight_time * preset.time_elongation
        if moving:
            elongation += math.hypot(fvx, fvy) * impact.force * preset.particle_elongation

        dots.append(Dot(
            position=(x, y),
            radius=float(radius),
            category=category,
            velocity=(fvx, fvy),
            elongation=float(max(elongation, 1.0)),
        ))
    return dots


def max_splat_size(parameters: Dict[DotCategory, DotCategoryParameters]) -> int:
    """Upper bound on the number of dots one splat can produce."""
    total = 0
    for category in CATEGORY_ORDER:
        params = parameters.get(category)
        if params is None or not params.enabled:
            continue
        total += 1 if category == DotCategory.CENTRAL else params.count_max
    return total


def generate_splat(impact: ImpactEvent,
                   parameters: Dict[DotCategory, DotCategoryParameters],
                   preset: PhysicsPreset,
                   rng: np.random.Generator,
                   max_dots_per_splat: Optional[int] = None) -> List[Dot]:
    """
    Generates the dots for one impact.

    Args:
        impact (ImpactEvent): The originating impact.
        parameters (Dict[DotCategory, DotCategoryParameters]): Per-category ranges.
        preset (PhysicsPreset): Elongation multipliers to use.
        rng (np.random.Generator): Random source; seed it for replay.
        max_dots_per_splat (Optional[int]): Safety limit on the splat size.

    Returns:
        List[Dot]: Dots in category order, Central first.
    """
    if max_dots_per_splat is not None:
        upper_bound = max_splat_size(parameters)
        if upper_bound > max_dots_per_splat:
            logging.warning(
                f"Splat could create {upper_bound} dots, exceeding the limit of "
                f"{max_dots_per_splat}. Ignoring impact."
            )
            return []

    dots: List[Dot] = []
    for category in CATEGORY_ORDER:
        params = parameters.get(category)
        if params is None or not params.enabled:
            continue
        if category == DotCategory.CENTRAL:
            dots.append(_central_dot(impact, params, preset, rng))
        else:
            dots.extend(_scattered_dots(impact, category, params, preset, rng))
    return dots


class SplatGenerator:
    """
    Owns the generation parameters and the random source for the scene.
    """
    def __init__(self, params: Optional[Dict[str, Any]] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Initializes the generator.

        Args:
            params (Dict[str, Any]): The "generation" section of config.json.
            rng (Optional[np.random.Generator]): Overrides the configured source.
        """
        params = params or {}
        self.seed = params.get('seed', 12345)
        self.use_seeded_rng = params.get('use_seeded_rng', False)
        self.max_dots_per_splat = params.get('max_dots_per_splat', DEFAULT_MAX_DOTS_PER_SPLAT)
        self.parameters = parse_category_parameters(params.get('categories'))
        self.baseline_preset = BASELINE_PRESET
        self.heightened_preset = HEIGHTENED_PRESET

        # Rule 12: All randomness flows through one injectable generator.
        self._injected_rng = rng is not None
        self.rng = rng if rng is not None else np.random.default_rng(
            self.seed if self.use_seeded_rng else None
        )

        logging.info(
            f"SplatGenerator initialized (seeded={self.use_seeded_rng}, "
            f"max dots per splat={self.max_dots_per_splat})."
        )

    def set_presets(self, baseline: Optional[PhysicsPreset] = None,
                    heightened: Optional[PhysicsPreset] = None) -> None:
        if baseline is not None:
            self.baseline_preset = baseline
        if heightened is not None:
            self.heightened_preset = heightened

    def set_category_parameters(self, data: Dict[Any, Any]) -> None:
        """Merges partial per-category updates over the current parameters."""
        self.parameters = parse_category_parameters(data, base=self.parameters)
        logging.info(f"Category parameters updated for: {', '.join(str(k) for k in data)}.")

    def reseed(self, seed: Optional[int] = None) -> None:
        if seed is not None:
            self.seed = seed
        self.rng = np.random.default_rng(self.seed)

    def preset(self, heightened: bool = False) -> PhysicsPreset:
        return self.heightened_preset if heightened else self.baseline_preset

    def generate(self, impact: ImpactEvent, heightened: bool = False) -> List[Dot]:
        # A seeded source replays the same splat for the same impact.
        if self.use_seeded_rng and not self._injected_rng:
            self.reseed()
        dots = generate_splat(
            impact, self.parameters, self.preset(heightened), self.rng,
            max_dots_per_splat=self.max_dots_per_splat,
        )
        logging.debug(
            f"Generated {len(dots)} dots for impact at "
            f"({impact.position[0]:.3f}, {impact.position[1]:.3f}), force {impact.force:.2f}."
        )
        return dots
