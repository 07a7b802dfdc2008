import numpy as np
import pytest

from compositor import DEFAULT_RENDER_PASSES, PassCompositor, RenderPass, parse_render_passes, to_rgb8
from constants import ALL_CATEGORIES_MASK, CENTRAL_DOT_MASK, LARGE_DOT_MASK, MEDIUM_DOT_MASK, SPLASH_DOT_MASK
from dots import BASELINE_PRESET, HEIGHTENED_PRESET, DotSnapshot


class FlatRenderer:
    """Stands in for FieldRenderer: every layer is fully covered with the pass color."""

    def __init__(self, width=4, height=3, available=True, alpha=1.0):
        self.width = width
        self.height = height
        self.available = available
        self.alpha = alpha
        self.calls = []

    def render(self, snapshot, category_mask, color, preset):
        self.calls.append((category_mask, tuple(color), preset))
        if not self.available:
            return None
        layer = np.empty((self.height, self.width, 4), dtype=np.float32)
        layer[..., :3] = color
        layer[..., 3] = self.alpha
        return layer


def test_render_pass_from_ui_shape() -> None:
    render_pass = RenderPass.from_dict({
        "name": "ink",
        "color": {"r": 1.5, "g": 0.2, "b": -1.0},
        "opacity": 0.4,
        "categoryMask": {"large": True, "medium": False},
        "zOrder": 3,
    })
    assert render_pass.color == (1.0, 0.2, 0.0)
    assert render_pass.category_mask == LARGE_DOT_MASK
    assert render_pass.z_order == 3
    assert render_pass.enabled
    assert not render_pass.heightened


def test_default_passes_follow_layer_templates() -> None:
    background, foreground, dramatic = DEFAULT_RENDER_PASSES
    assert background.category_mask == ALL_CATEGORIES_MASK
    assert foreground.category_mask == LARGE_DOT_MASK | MEDIUM_DOT_MASK | SPLASH_DOT_MASK
    assert foreground.opacity == 0.6
    assert not dramatic.enabled
    assert dramatic.heightened


def test_parse_render_passes_copies_instances() -> None:
    passes = parse_render_passes(DEFAULT_RENDER_PASSES)
    passes[0].opacity = 0.1
    assert DEFAULT_RENDER_PASSES[0].opacity == 1.0


def test_passes_are_sorted_by_z_order() -> None:
    compositor = PassCompositor(FlatRenderer(), [
        {"name": "top", "zOrder": 5},
        {"name": "bottom", "zOrder": -1},
        {"name": "middle", "zOrder": 2},
    ])
    assert [p.name for p in compositor.passes] == ["bottom", "middle", "top"]
    assert compositor.get_pass("middle").z_order == 2
    assert compositor.get_pass("missing") is None


def test_disabled_passes_are_not_rendered() -> None:
    renderer = FlatRenderer()
    compositor = PassCompositor(renderer)
    compositor.composite(DotSnapshot.empty())
    assert len(renderer.calls) == 2
    assert compositor.combined_mask == ALL_CATEGORIES_MASK


def test_heightened_pass_uses_heightened_preset() -> None:
    renderer = FlatRenderer()
    compositor = PassCompositor(renderer, [
        {"name": "calm"},
        {"name": "wild", "heightened": True, "zOrder": 1},
    ])
    compositor.render_layers(DotSnapshot.empty())
    assert renderer.calls[0][2] is BASELINE_PRESET
    assert renderer.calls[1][2] is HEIGHTENED_PRESET


def test_multiply_blend_with_opacity() -> None:
    compositor = PassCompositor(FlatRenderer(), [
        {"name": "a", "color": [0.5, 1.0, 1.0], "opacity": 1.0, "zOrder": 0},
        {"name": "b", "color": [1.0, 0.5, 1.0], "opacity": 0.5, "zOrder": 1},
    ])
    image = compositor.composite(DotSnapshot.empty())
    assert image.shape == (3, 4, 4)
    np.testing.assert_allclose(image[1, 2], [0.5, 0.75, 1.0, 1.0])


def test_uncovered_canvas_stays_white_and_transparent() -> None:
    compositor = PassCompositor(FlatRenderer(alpha=0.0))
    image = compositor.composite(DotSnapshot.empty())
    assert np.all(image[..., :3] == 1.0)
    assert np.all(image[..., 3] == 0.0)


def test_unavailable_renderer_yields_no_image() -> None:
    compositor = PassCompositor(FlatRenderer(available=False))
    assert compositor.composite(DotSnapshot.empty()) is None


def test_to_rgb8() -> None:
    image = np.zeros((1, 3, 4), dtype=np.float32)
    image[0, :, :3] = [[0.0, 0.5, 1.0], [1.2, -0.1, 0.2], [1.0, 1.0, 1.0]]
    rgb = to_rgb8(image)
    assert rgb.dtype == np.uint8
    assert rgb.shape == (1, 3, 3)
    assert rgb[0, 0].tolist() == [0, 128, 255]
    assert rgb[0, 1].tolist() == [255, 0, 51]


@pytest.mark.parametrize("value", [[0.1, 0.2, 0.3], (0.1, 0.2, 0.3, 0.9), {"r": 0.1, "g": 0.2, "b": 0.3}])
def test_color_shapes(value) -> None:
    assert RenderPass(name="x", color=value).color == pytest.approx((0.1, 0.2, 0.3))


def test_single_category_name_as_mask() -> None:
    render_pass = RenderPass.from_dict({"name": "cores", "categoryMask": "central"})
    assert render_pass.category_mask == CENTRAL_DOT_MASK
