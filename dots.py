# dots.py
"""
Data model for splatter dots and the bounded buffer that holds them.

This module defines the immutable records exchanged between components
(impacts, dots, per-category generation ranges, physics presets) and the
DotBuffer class, which stores all active dots in preallocated NumPy
arrays and hands out flattened read-only snapshots for field evaluation.
"""
import logging
import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from constants import (
    ALL_CATEGORIES_MASK, DEFAULT_BUFFER_CAPACITY, MIN_RADIUS
)

# --- Data Contracts ---
#
# class DotBuffer:
#   - __init__(self, capacity: int = 512):
#     - Side Effects: Allocates arrays sized to capacity.
#     - Invariants:
#       - self.positions is a NumPy array of shape (C, 2) of dtype float64.
#       - self.velocities is a NumPy array of shape (C, 2) of dtype float64.
#       - self.radii, self.elongations are (C,) float64.
#       - self.categories is (C,) int32.
#       - 0 <= len(self) <= C at all times.
#
#   - append(self, dots: Iterable[Dot]) -> int:
#     - Outputs: number of dots actually stored.
#     - Side Effects: Fills the next free slots. Dots beyond capacity are
#       dropped (earliest-kept policy). The first drop since clear() logs
#       a warning, later ones log at DEBUG.
#
#   - clear(self) -> None: idempotent.
#
#   - snapshot(self, flip_y: bool = False) -> DotSnapshot:
#     - Outputs: copies of the live prefix, marked read-only.

Vec2 = Tuple[float, float]


class DotCategory(IntEnum):
    CENTRAL = 0
    LARGE = 1
    MEDIUM = 2
    SMALL = 3
    SPLASH = 4

    @property
    def mask(self) -> int:
        return 1 << int(self)

    @classmethod
    def parse(cls, value: Any) -> "DotCategory":
        """Accepts a DotCategory, its integer id, or its (case-insensitive) name."""
        if isinstance(value, DotCategory):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            # "micro" is the original name of the splash category.
            if key == "MICRO":
                key = "SPLASH"
            return cls[key]
        return cls(int(value))


# Generation and append order.
CATEGORY_ORDER = (
    DotCategory.CENTRAL,
    DotCategory.LARGE,
    DotCategory.MEDIUM,
    DotCategory.SMALL,
    DotCategory.SPLASH,
)


def parse_category_mask(value: Any) -> int:
    """
    Builds a category bitset from an int, a category name, a list of
    category names, or a mapping of category name -> bool.
    """
    if value is None:
        return ALL_CATEGORIES_MASK
    if isinstance(value, bool):
        return ALL_CATEGORIES_MASK if value else 0
    if isinstance(value, int):
        return value & ALL_CATEGORIES_MASK
    if isinstance(value, str):
        value = [value]
    mask = 0
    if isinstance(value, dict):
        for name, enabled in value.items():
            if enabled:
                mask |= DotCategory.parse(name).mask
        return mask
    for name in value:
        mask |= DotCategory.parse(name).mask
    return mask


@dataclass(frozen=True)
class ImpactEvent:
    """One pointer impact. Position is normalized; force is clamped to [0, 1]."""
    position: Vec2
    velocity: Vec2 = (0.0, 0.0)
    force: float = 0.5
    timestamp: float = 0.0

    def __post_init__(self):
        x, y = (float(v) for v in self.position)
        object.__setattr__(self, "position", (min(max(x, 0.0), 1.0), min(max(y, 0.0), 1.0)))
        object.__setattr__(self, "velocity", tuple(float(v) for v in self.velocity))
        object.__setattr__(self, "force", min(max(float(self.force), 0.0), 1.0))

    @property
    def speed(self) -> float:
        return math.hypot(self.velocity[0], self.velocity[1])


@dataclass(frozen=True)
class Dot:
    position: Vec2
    radius: float
    category: DotCategory
    velocity: Vec2 = (0.0, 0.0)
    elongation: float = 1.0


@dataclass(frozen=True)
class DotCategoryParameters:
    """
    Generation ranges for one dot category. Central only uses the radius
    range. Degenerate ranges are normalized, never rejected.
    """
    enabled: bool = True
    radius_min: float = 0.01
    radius_max: float = 0.02
    count_min: int = 0
    count_max: int = 0
    distance_min: float = 0.0
    distance_max: float = 0.0

    def __post_init__(self):
        r_lo, r_hi = sorted((max(float(self.radius_min), MIN_RADIUS), max(float(self.radius_max), MIN_RADIUS)))
        c_lo, c_hi = sorted((max(int(self.count_min), 0), max(int(self.count_max), 0)))
        d_lo, d_hi = sorted((max(float(self.distance_min), 0.0), max(float(self.distance_max), 0.0)))
        object.__setattr__(self, "enabled", bool(self.enabled))
        object.__setattr__(self, "radius_min", r_lo)
        object.__setattr__(self, "radius_max", r_hi)
        object.__setattr__(self, "count_min", c_lo)
        object.__setattr__(self, "count_max", c_hi)
        object.__setattr__(self, "distance_min", d_lo)
        object.__setattr__(self, "distance_max", d_hi)

    @classmethod
    def from_dict(cls, data: Dict[str, Any],
                  base: Optional["DotCategoryParameters"] = None) -> "DotCategoryParameters":
        """Accepts both the camelCase UI shape and snake_case keys. Missing keys come from base."""
        def pick(snake: str, camel: str, default):
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        def pick_range(name: str, lo_default, hi_default):
            lo_given = f"{name}_min" in data or f"{name}Min" in data
            hi_given = f"{name}_max" in data or f"{name}Max" in data
            lo = pick(f"{name}_min", f"{name}Min", lo_default)
            hi = pick(f"{name}_max", f"{name}Max", hi_default)
            # An inherited bound gives way to a newly set one; two new bounds
            # in the wrong order are swapped in __post_init__.
            if lo_given != hi_given and lo > hi:
                if hi_given:
                    lo = hi
                else:
                    hi = lo
            return lo, hi

        defaults = base or cls()
        radius_min, radius_max = pick_range("radius", defaults.radius_min, defaults.radius_max)
        count_min, count_max = pick_range("count", defaults.count_min, defaults.count_max)
        distance_min, distance_max = pick_range("distance", defaults.distance_min, defaults.distance_max)
        return cls(
            enabled=pick("enabled", "enabled", defaults.enabled),
            radius_min=radius_min,
            radius_max=radius_max,
            count_min=count_min,
            count_max=count_max,
            distance_min=distance_min,
            distance_max=distance_max,
        )


DEFAULT_CATEGORY_PARAMETERS: Dict[DotCategory, DotCategoryParameters] = {
    DotCategory.CENTRAL: DotCategoryParameters(radius_min=0.04, radius_max=0.07),
    DotCategory.LARGE: DotCategoryParameters(
        radius_min=0.01, radius_max=0.025, count_min=6, count_max=12, distance_max=0.15),
    DotCategory.MEDIUM: DotCategoryParameters(
        radius_min=0.005, radius_max=0.012, count_min=10, count_max=20, distance_max=0.2),
    DotCategory.SMALL: DotCategoryParameters(
        radius_min=0.002, radius_max=0.006, count_min=15, count_max=30, distance_max=0.35),
    DotCategory.SPLASH: DotCategoryParameters(
        radius_min=0.001, radius_max=0.003, count_min=20, count_max=40, distance_max=0.6),
}


def parse_category_parameters(
    data: Optional[Dict[str, Any]],
    base: Optional[Dict[DotCategory, DotCategoryParameters]] = None,
) -> Dict[DotCategory, DotCategoryParameters]:
    """Merges a {category name: {...}} mapping over a base parameter set."""
    params = dict(base if base is not None else DEFAULT_CATEGORY_PARAMETERS)
    for name, values in (data or {}).items():
        category = DotCategory.parse(name)
        if isinstance(values, DotCategoryParameters):
            params[category] = values
        else:
            params[category] = DotCategoryParameters.from_dict(values, params.get(category))
    return params


@dataclass(frozen=True)
class PhysicsPreset:
    """Elongation multipliers for generation and noise settings for rendering."""
    central_elongation: float = 2.0
    particle_elongation: float = 1.5
    time_elongation: float = 2.0
    noise_frequency: float = 20.0
    noise_amplitude: float = 0.3
    velocity_roughness: float = 0.4

    def __post_init__(self):
        # Negative multipliers would break elongation >= 1.
        for name in ("central_elongation", "particle_elongation", "time_elongation",
                     "noise_amplitude", "velocity_roughness"):
            object.__setattr__(self, name, max(float(getattr(self, name)), 0.0))
        object.__setattr__(self, "noise_frequency", float(self.noise_frequency))

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional["PhysicsPreset"] = None) -> "PhysicsPreset":
        base = base or cls()
        values = {}
        for name in cls.__dataclass_fields__:
            camel = "".join(p if i == 0 else p.title() for i, p in enumerate(name.split("_")))
            values[name] = data.get(name, data.get(camel, getattr(base, name)))
        return cls(**values)


BASELINE_PRESET = PhysicsPreset()
HEIGHTENED_PRESET = PhysicsPreset(
    central_elongation=5.0,
    particle_elongation=3.0,
    time_elongation=4.0,
    noise_frequency=30.0,
    noise_amplitude=0.8,
    velocity_roughness=1.2,
)


@dataclass(frozen=True)
class DotSnapshot:
    """Flattened, read-only view of the buffer in stable insertion order."""
    xs: np.ndarray
    ys: np.ndarray
    radii: np.ndarray
    categories: np.ndarray
    velocities: np.ndarray
    elongations: np.ndarray
    flipped: bool = False

    def __len__(self) -> int:
        return int(self.xs.shape[0])

    @classmethod
    def empty(cls) -> "DotSnapshot":
        return DotBuffer(capacity=0).snapshot()


class DotBuffer:
    """
    A fixed-capacity container for all active dots, storing their state in
    NumPy arrays so a snapshot is a handful of slice copies.
    """
    def __init__(self, capacity: int = DEFAULT_BUFFER_CAPACITY):
        """
        Initializes the buffer.

        Args:
            capacity (int): Maximum number of dots held at once.
        """
        self.capacity = max(int(capacity), 0)
        self.count = 0
        self.dropped_total = 0

        self.positions = np.zeros((self.capacity, 2), dtype=np.float64)
        self.velocities = np.zeros((self.capacity, 2), dtype=np.float64)
        self.radii = np.zeros(self.capacity, dtype=np.float64)
        self.elongations = np.ones(self.capacity, dtype=np.float64)
        self.categories = np.zeros(self.capacity, dtype=np.int32)

        logging.debug(f"DotBuffer allocated with capacity {self.capacity}.")

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[Dot]:
        for i in range(self.count):
            yield Dot(
                position=(float(self.positions[i, 0]), float(self.positions[i, 1])),
                radius=float(self.radii[i]),
                category=DotCategory(int(self.categories[i])),
                velocity=(float(self.velocities[i, 0]), float(self.velocities[i, 1])),
                elongation=float(self.elongations[i]),
            )

    @property
    def is_full(self) -> bool:
        return self.count >= self.capacity

    def append(self, dots: Iterable[Dot]) -> int:
        incoming: List[Dot] = list(dots)
        room = self.capacity - self.count
        accepted = incoming[:max(room, 0)]

        for offset, dot in enumerate(accepted):
            i = self.count + offset
            self.positions[i] = dot.position
            self.velocities[i] = dot.velocity
            self.radii[i] = dot.radius
            self.elongations[i] = dot.elongation
            self.categories[i] = int(dot.category)
        self.count += len(accepted)

        dropped = len(incoming) - len(accepted)
        if dropped:
            # Warn once per fill; later drops until clear() only go to DEBUG.
            log = logging.warning if self.dropped_total == 0 else logging.debug
            self.dropped_total += dropped
            log(
                f"DotBuffer full ({self.capacity}). Dropped {dropped} new dots "
                f"({self.dropped_total} since last clear)."
            )
        return len(accepted)

    def clear(self) -> None:
        self.count = 0
        self.dropped_total = 0

    def snapshot(self, flip_y: bool = False) -> DotSnapshot:
        n = self.count
        xs = self.positions[:n, 0].copy()
        ys = self.positions[:n, 1].copy()
        velocities = self.velocities[:n].copy()
        if flip_y:
            ys = 1.0 - ys
            velocities[:, 1] = -velocities[:, 1]

        arrays = [xs, ys, self.radii[:n].copy(), self.categories[:n].copy(),
                  velocities, self.elongations[:n].copy()]
        for arr in arrays:
            arr.setflags(write=False)
        return DotSnapshot(*arrays, flipped=flip_y)
