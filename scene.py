# scene.py
"""
The scene controller that ties generation, storage and rendering together.

SplatterScene is the single entry point the display layer talks to. Input
events are passed to it directly as method calls; after every mutation it
takes a fresh copy of the dot buffer and marks a redraw, and it only runs
the field renderer when a frame is actually requested.
"""
import logging
import time
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from compositor import DEFAULT_RENDER_PASSES, PassCompositor, RenderPass
from constants import DEFAULT_BUFFER_CAPACITY, DEFAULT_RENDER_SCALE, WINDOW_HEIGHT, WINDOW_WIDTH
from dots import BASELINE_PRESET, HEIGHTENED_PRESET, Dot, DotBuffer, DotSnapshot, ImpactEvent, PhysicsPreset
from field import FieldRenderer
from splatter import SplatGenerator

# --- Data Contracts ---
#
# class SplatterScene:
#   - __init__(self, config: Dict[str, Any], width: int, height: int, rng=None):
#     - config: the full config.json dictionary.
#     - width, height: display size in pixels; the field is rendered at
#       width * render_scale by height * render_scale.
#
#   - add_impact(self, position, velocity=(0, 0), force=0.5, timestamp=None) -> List[Dot]:
#     - Outputs: the dots that were actually stored.
#     - Side Effects: Appends to the buffer, refreshes the snapshot and
#       notifies redraw listeners.
#
#   - render(self) -> Optional[np.ndarray]:
#     - Outputs: (H, W, 4) float32 composite, or None when rendering is
#       unavailable. Returns the cached frame when nothing changed.
#
#   - Invariants: self.snapshot never aliases the buffer's live arrays.

RedrawListener = Callable[["SplatterScene"], None]


class SplatterScene:
    """
    Owns the dot buffer, the generator and the compositor for one view.
    """
    def __init__(self, config: Dict[str, Any], width: int = WINDOW_WIDTH, height: int = WINDOW_HEIGHT,
                 rng: Optional[np.random.Generator] = None):
        """
        Initializes the scene from the configuration dictionary.

        Args:
            config (Dict[str, Any]): The full configuration.
            width (int): Display width in pixels.
            height (int): Display height in pixels.
            rng (Optional[np.random.Generator]): Overrides the configured random source.
        """
        gen_params = config.get('generation', {})
        preset_params = config.get('presets', {})
        vis_params = config.get('visualization', {})

        baseline = PhysicsPreset.from_dict(preset_params.get('baseline', {}), BASELINE_PRESET)
        heightened = PhysicsPreset.from_dict(preset_params.get('heightened', {}), HEIGHTENED_PRESET)

        self.flip_y = vis_params.get('flip_y', False)
        self.heightened = gen_params.get('heightened', False)

        self.buffer = DotBuffer(gen_params.get('capacity', DEFAULT_BUFFER_CAPACITY))
        self.generator = SplatGenerator(gen_params, rng=rng)
        self.generator.set_presets(baseline, heightened)

        render_scale = vis_params.get('render_scale', DEFAULT_RENDER_SCALE)
        self.renderer = FieldRenderer(
            max(int(width * render_scale), 1),
            max(int(height * render_scale), 1),
            aspect_ratio=width / height,
        )
        self.compositor = PassCompositor(
            self.renderer,
            config.get('render_passes', DEFAULT_RENDER_PASSES),
            baseline=baseline,
            heightened=heightened,
        )

        self._listeners: List[RedrawListener] = []
        self._frame: Optional[np.ndarray] = None
        self.frame_count = 0
        self.snapshot: DotSnapshot = self.buffer.snapshot(flip_y=self.flip_y)
        self.needs_redraw = True

        logging.info(
            f"SplatterScene initialized ({width}x{height}, field {self.renderer.width}x{self.renderer.height}, "
            f"capacity {self.buffer.capacity}, heightened={self.heightened})."
        )

    @property
    def size(self) -> Tuple[int, int]:
        return (self.renderer.width, self.renderer.height)

    def add_redraw_listener(self, callback: RedrawListener) -> None:
        self._listeners.append(callback)

    def regenerate_buffers(self) -> None:
        """
        Takes a fresh copy of the dot buffer and schedules a redraw.
        Called after every mutation of dots or passes.
        """
        self.snapshot = self.buffer.snapshot(flip_y=self.flip_y)
        self.needs_redraw = True
        for callback in self._listeners:
            callback(self)

    def add_impact(self, position: Tuple[float, float], velocity: Tuple[float, float] = (0.0, 0.0),
                   force: float = 0.5, timestamp: Optional[float] = None) -> List[Dot]:
        impact = ImpactEvent(
            position=position,
            velocity=velocity,
            force=force,
            timestamp=time.time() if timestamp is None else timestamp,
        )
        dots = self.generator.generate(impact, heightened=self.heightened)
        stored = self.buffer.append(dots)
        if stored:
            self.regenerate_buffers()
        logging.info(f"Impact at ({impact.position[0]:.3f}, {impact.position[1]:.3f}) "
                     f"stored {stored}/{len(dots)} dots ({len(self.buffer)} total).")
        return dots[:stored]

    def clear(self) -> None:
        self.buffer.clear()
        self.regenerate_buffers()
        logging.info("Scene cleared.")

    def set_render_passes(self, passes: Iterable[Any]) -> None:
        self.compositor.set_passes(passes)
        self.regenerate_buffers()

    def set_pass_enabled(self, name: str, enabled: bool) -> bool:
        """Enables or disables one pass by name. Returns False if no such pass exists."""
        if self.compositor.get_pass(name) is None:
            logging.warning(f"No render pass named '{name}'.")
            return False
        passes: List[RenderPass] = [
            replace(p, enabled=enabled) if p.name == name else p for p in self.compositor.passes
        ]
        self.set_render_passes(passes)
        return True

    def set_category_parameters(self, data: Dict[Any, Any]) -> None:
        # Only future splats change; existing dots keep their generated shape.
        self.generator.set_category_parameters(data)

    def set_heightened(self, heightened: bool) -> None:
        self.heightened = bool(heightened)
        logging.info(f"Heightened generation {'enabled' if self.heightened else 'disabled'}.")

    def render(self) -> Optional[np.ndarray]:
        if not self.needs_redraw:
            return self._frame

        start = time.perf_counter()
        self._frame = self.compositor.composite(self.snapshot)
        self.needs_redraw = False
        if self._frame is None:
            return None

        self.frame_count += 1
        logging.debug(
            f"Frame {self.frame_count} composited from {len(self.snapshot)} dots "
            f"in {(time.perf_counter() - start) * 1000:.1f}ms."
        )
        return self._frame
