# compositor.py
"""
Multi-pass compositing of field layers.

This module defines the RenderPass record (one colored, masked,
opacity-controlled view over the dot buffer) and the PassCompositor
class, which renders every enabled pass with the FieldRenderer and
multiplies the layers onto a paper-white canvas back to front.
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from constants import ALL_CATEGORIES_MASK
from dots import BASELINE_PRESET, HEIGHTENED_PRESET, DotSnapshot, PhysicsPreset, parse_category_mask
from field import FieldRenderer

# --- Data Contracts ---
#
# class PassCompositor:
#   - __init__(self, renderer: FieldRenderer, passes: Iterable[RenderPass] = ()):
#   - set_passes(self, passes) -> None:
#     - Invariants: self.passes is sorted by ascending z_order (stable).
#   - render_layers(self, snapshot) -> List[Tuple[RenderPass, np.ndarray]]:
#     - One (H, W, 4) layer per enabled pass, back to front.
#   - composite(self, snapshot) -> Optional[np.ndarray]:
#     - (H, W, 4) float32. RGB starts white and is multiplied by each layer;
#       alpha accumulates coverage. None when the renderer is unavailable.

RGB = Tuple[float, float, float]


def _parse_color(value: Any) -> RGB:
    if isinstance(value, dict):
        value = (value.get('r', 0.0), value.get('g', 0.0), value.get('b', 0.0))
    r, g, b = (min(max(float(c), 0.0), 1.0) for c in list(value)[:3])
    return (r, g, b)


@dataclass
class RenderPass:
    name: str
    enabled: bool = True
    color: RGB = (0.0, 0.0, 0.0)
    category_mask: int = ALL_CATEGORIES_MASK
    opacity: float = 1.0
    z_order: int = 0
    heightened: bool = False

    def __post_init__(self):
        self.color = _parse_color(self.color)
        self.category_mask = parse_category_mask(self.category_mask)
        self.opacity = min(max(float(self.opacity), 0.0), 1.0)
        self.z_order = int(self.z_order)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], z_order: int = 0) -> "RenderPass":
        """
        Builds a pass from the UI shape
        {name, enabled, color{r,g,b}, opacity, categoryMask, zOrder?, heightened?}.
        """
        return cls(
            name=data.get('name', f"pass{z_order}"),
            enabled=data.get('enabled', True),
            color=data.get('color', (0.0, 0.0, 0.0)),
            category_mask=data.get('category_mask', data.get('categoryMask')),
            opacity=data.get('opacity', 1.0),
            z_order=data.get('z_order', data.get('zOrder', z_order)),
            heightened=data.get('heightened', False),
        )


DEFAULT_RENDER_PASSES = (
    RenderPass(name="background", color=(0.8, 0.1, 0.1), opacity=1.0, z_order=0),
    RenderPass(name="foreground", color=(0.3, 0.5, 0.8), opacity=0.6, z_order=1,
               category_mask=["large", "medium", "splash"]),
    RenderPass(name="dramatic", enabled=False, color=(0.6, 0.0, 0.0), opacity=0.8,
               z_order=2, heightened=True),
)


def parse_render_passes(items: Iterable[Any]) -> List[RenderPass]:
    passes = []
    for index, item in enumerate(items):
        passes.append(replace(item) if isinstance(item, RenderPass) else RenderPass.from_dict(item, z_order=index))
    return passes


def to_rgb8(image: np.ndarray) -> np.ndarray:
    """Converts a composited float image to (H, W, 3) uint8 for display."""
    return (np.clip(image[..., :3], 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


class PassCompositor:
    """
    Renders and blends an ordered set of passes over one dot snapshot.
    """
    def __init__(self, renderer: FieldRenderer, passes: Iterable[RenderPass] = DEFAULT_RENDER_PASSES,
                 baseline: PhysicsPreset = BASELINE_PRESET, heightened: PhysicsPreset = HEIGHTENED_PRESET):
        self.renderer = renderer
        self.baseline_preset = baseline
        self.heightened_preset = heightened
        self.passes: List[RenderPass] = []
        self.set_passes(passes)

    def set_passes(self, passes: Iterable[Any]) -> None:
        self.passes = sorted(parse_render_passes(passes), key=lambda p: p.z_order)
        enabled = [p.name for p in self.passes if p.enabled]
        logging.info(f"Render passes set: {len(self.passes)} total, enabled: {', '.join(enabled) or 'none'}.")

    def get_pass(self, name: str) -> Optional[RenderPass]:
        return next((p for p in self.passes if p.name == name), None)

    def preset_for(self, render_pass: RenderPass) -> PhysicsPreset:
        return self.heightened_preset if render_pass.heightened else self.baseline_preset

    @property
    def combined_mask(self) -> int:
        """Union of the masks of all enabled passes."""
        mask = 0
        for render_pass in self.passes:
            if render_pass.enabled:
                mask |= render_pass.category_mask
        return mask

    def render_layers(self, snapshot: DotSnapshot) -> List[Tuple[RenderPass, np.ndarray]]:
        layers = []
        for render_pass in self.passes:
            if not render_pass.enabled:
                continue
            layer = self.renderer.render(
                snapshot, render_pass.category_mask, render_pass.color, self.preset_for(render_pass)
            )
            if layer is None:
                return []
            layers.append((render_pass, layer))
        return layers

    def composite(self, snapshot: DotSnapshot) -> Optional[np.ndarray]:
        if not self.renderer.available:
            return None

        canvas = np.zeros((self.renderer.height, self.renderer.width, 4), dtype=np.float32)
        canvas[..., :3] = 1.0
        for render_pass, layer in self.render_layers(snapshot):
            # Multiply blend, weighted by coverage and pass opacity.
            weight = layer[..., 3:4] * render_pass.opacity
            canvas[..., :3] *= (1.0 - weight) + weight * layer[..., :3]
            canvas[..., 3:4] += weight * (1.0 - canvas[..., 3:4])
        return canvas
