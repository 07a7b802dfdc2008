import math

import numpy as np
import pytest

from constants import FLIGHT_TIME_RANGE, GRAVITY, JITTER_X, JITTER_Y, MAX_DISTANCE_FACTOR
from dots import (
    BASELINE_PRESET, DEFAULT_CATEGORY_PARAMETERS, HEIGHTENED_PRESET, DotCategory,
    ImpactEvent, parse_category_parameters,
)
from splatter import SplatGenerator, generate_splat, max_splat_size


def _splat(impact, seed=0, preset=BASELINE_PRESET, parameters=None, **kwargs):
    return generate_splat(
        impact, parameters or DEFAULT_CATEGORY_PARAMETERS, preset, np.random.default_rng(seed), **kwargs
    )


def test_central_dot_comes_first_at_impact_position() -> None:
    impact = ImpactEvent(position=(0.3, 0.6), velocity=(0.2, 0.1), force=0.8)
    dots = _splat(impact)
    assert dots[0].category is DotCategory.CENTRAL
    assert dots[0].position == (0.3, 0.6)
    assert sum(d.category is DotCategory.CENTRAL for d in dots) == 1


def test_categories_appear_in_generation_order() -> None:
    dots = _splat(ImpactEvent(position=(0.5, 0.5), velocity=(0.3, 0.0), force=0.6))
    order = [int(d.category) for d in dots]
    assert order == sorted(order)


@pytest.mark.parametrize("preset", [BASELINE_PRESET, HEIGHTENED_PRESET])
def test_every_dot_has_positive_radius_and_elongation_at_least_one(preset) -> None:
    rng = np.random.default_rng(42)
    for seed in range(20):
        impact = ImpactEvent(
            position=tuple(rng.uniform(0.0, 1.0, size=2)),
            velocity=tuple(rng.uniform(-2.0, 2.0, size=2)),
            force=float(rng.uniform(0.0, 1.0)),
        )
        for dot in _splat(impact, seed=seed, preset=preset):
            assert dot.radius > 0.0
            assert dot.elongation >= 1.0
            assert 0.0 <= dot.position[0] <= 1.0
            assert 0.0 <= dot.position[1] <= 1.0


def test_zero_velocity_elongation_depends_on_flight_time_only() -> None:
    impact = ImpactEvent(position=(0.5, 0.5), velocity=(0.0, 0.0), force=1.0)
    multiplier = BASELINE_PRESET.time_elongation
    low = 1.0 + FLIGHT_TIME_RANGE[0] * multiplier
    high = 1.0 + FLIGHT_TIME_RANGE[1] * multiplier

    dots = _splat(impact, seed=3)
    assert dots[0].elongation == pytest.approx(1.0)
    for dot in dots[1:]:
        assert low - 1e-9 <= dot.elongation <= high + 1e-9


def test_jitter_is_independent_per_axis() -> None:
    impact = ImpactEvent(position=(0.5, 0.5), velocity=(0.0, 0.0), force=1.0)
    max_drop = 2.0 * 0.5 * GRAVITY[1] * FLIGHT_TIME_RANGE[1] ** 2
    for seed in range(50):
        for dot in _splat(impact, seed=seed)[1:]:
            vx, vy = dot.velocity
            assert abs(vx) <= JITTER_X
            assert -JITTER_Y <= vy <= JITTER_Y + max_drop


def test_counts_stay_within_category_ranges() -> None:
    impact = ImpactEvent(position=(0.5, 0.5), velocity=(0.1, 0.1), force=0.5)
    for seed in range(10):
        dots = _splat(impact, seed=seed)
        for category, params in DEFAULT_CATEGORY_PARAMETERS.items():
            if category is DotCategory.CENTRAL:
                continue
            count = sum(d.category is category for d in dots)
            assert params.count_min <= count <= params.count_max


def test_scatter_distance_is_clamped() -> None:
    impact = ImpactEvent(position=(0.5, 0.5), velocity=(4.0, -3.0), force=1.0)
    dots = _splat(impact, seed=11)
    for dot in dots[1:]:
        limit = DEFAULT_CATEGORY_PARAMETERS[dot.category].distance_max * MAX_DISTANCE_FACTOR
        distance = math.hypot(dot.position[0] - 0.5, dot.position[1] - 0.5)
        assert distance <= limit + 1e-9


def test_same_seed_gives_identical_splats() -> None:
    impact = ImpactEvent(position=(0.4, 0.4), velocity=(0.5, -0.2), force=0.7)
    assert _splat(impact, seed=99) == _splat(impact, seed=99)
    assert _splat(impact, seed=99) != _splat(impact, seed=100)


def test_disabled_category_produces_no_dots() -> None:
    parameters = parse_category_parameters({"splash": {"enabled": False}, "central": {"enabled": False}})
    dots = _splat(ImpactEvent(position=(0.5, 0.5)), parameters=parameters)
    assert dots
    assert all(d.category not in (DotCategory.SPLASH, DotCategory.CENTRAL) for d in dots)


def test_splat_exceeding_limit_is_ignored(caplog) -> None:
    bound = max_splat_size(DEFAULT_CATEGORY_PARAMETERS)
    assert bound == 1 + 12 + 20 + 30 + 40

    dots = _splat(ImpactEvent(position=(0.5, 0.5)), max_dots_per_splat=bound - 1)
    assert dots == []
    assert "exceeding the limit" in caplog.text
    assert _splat(ImpactEvent(position=(0.5, 0.5)), max_dots_per_splat=bound)


def test_generator_with_seeded_rng_replays_each_splat() -> None:
    generator = SplatGenerator({"seed": 7, "use_seeded_rng": True})
    impact = ImpactEvent(position=(0.2, 0.7), velocity=(0.3, 0.3), force=0.9)
    assert generator.generate(impact) == generator.generate(impact)


def test_generator_heightened_preset_stretches_more() -> None:
    generator = SplatGenerator({"seed": 5, "use_seeded_rng": True})
    impact = ImpactEvent(position=(0.5, 0.5), velocity=(0.0, 0.0), force=0.5)
    calm = generator.generate(impact)
    wild = generator.generate(impact, heightened=True)

    ratio = HEIGHTENED_PRESET.time_elongation / BASELINE_PRESET.time_elongation
    for a, b in zip(calm[1:], wild[1:]):
        assert b.position == a.position
        assert b.elongation - 1.0 == pytest.approx((a.elongation - 1.0) * ratio)


def test_generator_merges_category_updates() -> None:
    generator = SplatGenerator({"categories": {"large": {"count_min": 2, "count_max": 2}}})
    generator.set_category_parameters({"large": {"radiusMax": 0.05}})
    large = generator.parameters[DotCategory.LARGE]
    assert (large.count_min, large.count_max) == (2, 2)
    assert large.radius_max == 0.05
