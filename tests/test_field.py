import logging

import numpy as np
import pytest

import field
from constants import ALL_CATEGORIES_MASK, CENTRAL_DOT_MASK
from dots import BASELINE_PRESET, Dot, DotBuffer, DotCategory, PhysicsPreset
from field import FieldRenderer, field_alpha

QUIET = PhysicsPreset(velocity_roughness=0.0)


@pytest.fixture(scope="module")
def renderer() -> FieldRenderer:
    return FieldRenderer(32, 24, aspect_ratio=1.0)


def _snapshot(*dots, flip_y=False):
    buffer = DotBuffer(capacity=16)
    buffer.append(dots)
    return buffer.snapshot(flip_y=flip_y)


def _still(x, y, radius=0.05, category=DotCategory.CENTRAL):
    return Dot(position=(x, y), radius=radius, category=category)


def test_renderer_initializes(renderer) -> None:
    assert renderer.available
    assert renderer.aspect_ratio == 1.0


def test_empty_buffer_renders_transparent(renderer) -> None:
    layer = renderer.render(_snapshot(), ALL_CATEGORIES_MASK, (1.0, 0.0, 0.0))
    assert layer.shape == (24, 32, 4)
    assert layer.dtype == np.float32
    assert np.all(layer[..., 3] == 0.0)
    np.testing.assert_allclose(layer[0, 0, :3], [1.0, 0.0, 0.0])


def test_field_above_threshold_at_dot_centre(renderer) -> None:
    snapshot = _snapshot(_still(0.5, 0.5))
    value = renderer.sample(snapshot, [0.5], [0.5], ALL_CATEGORIES_MASK)[0]
    assert value > 0.7
    assert field_alpha(np.array([value]))[0] == pytest.approx(1.0)


def test_field_vanishes_beyond_culling_radius(renderer) -> None:
    snapshot = _snapshot(_still(0.5, 0.5, radius=0.02))
    assert renderer.sample(snapshot, [0.9], [0.9], ALL_CATEGORIES_MASK)[0] == 0.0


def test_two_impacts_sum(renderer) -> None:
    a = _still(0.45, 0.5, category=DotCategory.LARGE)
    b = Dot(position=(0.55, 0.52), radius=0.04, category=DotCategory.MEDIUM,
            velocity=(0.3, 0.1), elongation=1.8)
    us = np.linspace(0.3, 0.7, 9)
    vs = np.full(9, 0.5)

    both = renderer.sample(_snapshot(a, b), us, vs, ALL_CATEGORIES_MASK)
    only_a = renderer.sample(_snapshot(a), us, vs, ALL_CATEGORIES_MASK)
    only_b = renderer.sample(_snapshot(b), us, vs, ALL_CATEGORIES_MASK)
    np.testing.assert_allclose(both, only_a + only_b)


def test_mask_excludes_central_dots(renderer) -> None:
    central = _still(0.5, 0.5)
    large = _still(0.52, 0.5, radius=0.04, category=DotCategory.LARGE)
    without_central = ALL_CATEGORIES_MASK & ~CENTRAL_DOT_MASK

    both = _snapshot(central, large)
    masked = renderer.sample(both, [0.5], [0.5], without_central)[0]
    large_only = renderer.sample(_snapshot(large), [0.5], [0.5], ALL_CATEGORIES_MASK)[0]
    assert masked > 0.0
    assert masked == pytest.approx(large_only)

    assert renderer.sample(both, [0.5], [0.5], ALL_CATEGORIES_MASK)[0] > 0.7
    assert np.all(renderer.field(_snapshot(central), without_central) == 0.0)


def test_moving_dot_stretches_along_velocity(renderer) -> None:
    dot = Dot(position=(0.5, 0.5), radius=0.03, category=DotCategory.SMALL,
              velocity=(0.5, 0.0), elongation=3.0)
    snapshot = _snapshot(dot)
    along, across = renderer.sample(snapshot, [0.5 + 0.06, 0.5], [0.5, 0.5 + 0.06],
                                    ALL_CATEGORIES_MASK, QUIET)
    assert along > across


def test_roughness_only_affects_moving_dots(renderer) -> None:
    still = _snapshot(_still(0.5, 0.5))
    rough = PhysicsPreset(noise_amplitude=1.0, velocity_roughness=2.0)
    us = np.linspace(0.44, 0.56, 7)
    vs = np.full(7, 0.5)
    np.testing.assert_allclose(
        renderer.sample(still, us, vs, ALL_CATEGORIES_MASK, BASELINE_PRESET),
        renderer.sample(still, us, vs, ALL_CATEGORIES_MASK, rough),
    )


def test_flipped_snapshot_renders_the_same_image(renderer) -> None:
    dot = _still(0.3, 0.25, radius=0.08)
    upright = renderer.field(_snapshot(dot), ALL_CATEGORIES_MASK)
    flipped = renderer.field(_snapshot(dot, flip_y=True), ALL_CATEGORIES_MASK)
    np.testing.assert_allclose(upright, flipped)


def test_sample_rejects_mismatched_coordinates(renderer) -> None:
    with pytest.raises(ValueError):
        renderer.sample(_snapshot(), [0.1, 0.2], [0.1], ALL_CATEGORIES_MASK)


def test_failed_kernel_disables_rendering(monkeypatch, caplog) -> None:
    def broken(*args):
        raise RuntimeError("no backend")

    monkeypatch.setattr(field, "_field_kernel", broken)
    with caplog.at_level(logging.CRITICAL):
        renderer = FieldRenderer(8, 8)

    assert not renderer.available
    assert renderer.render(_snapshot(), ALL_CATEGORIES_MASK, (0.0, 0.0, 0.0)) is None
    assert len([r for r in caplog.records if r.levelno == logging.CRITICAL]) == 1
