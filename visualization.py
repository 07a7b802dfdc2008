# visualization.py
"""
Handles display and pointer input for the splatter scene using Pygame.
"""
import logging
import math
from typing import Any, Dict, Optional, Tuple

import pygame

from compositor import to_rgb8
from constants import BACKGROUND_COLOR, FPS, FULLSCREEN, WINDOW_HEIGHT, WINDOW_WIDTH
from scene import SplatterScene


# --- Data Contracts ---
#
# class Visualizer:
#   - __init__(self, vis_params: Optional[dict] = None):
#     - Inputs:
#       - vis_params: the "visualization" section of config.json.
#     - Side Effects: Initializes Pygame and creates a display surface.
#       self.width / self.height hold the actual display size.
#
#   - draw(self, scene: SplatterScene) -> bool:
#     - Outputs:
#       - bool: False if the user has quit, True otherwise.
#     - Side Effects: Forwards pointer and key events to the scene and blits
#       a new composite only when the scene has changed.

class Visualizer:
    """
    Shows the composited field and turns mouse gestures into impacts.
    """
    def __init__(self, vis_params: Optional[Dict[str, Any]] = None):
        """
        Initializes Pygame and the display window.
        """
        pygame.init()

        if FULLSCREEN:
            display_info = pygame.display.Info()
            width, height = display_info.current_w, display_info.current_h
            self.screen = pygame.display.set_mode((width, height), pygame.FULLSCREEN)
        else:
            width, height = WINDOW_WIDTH, WINDOW_HEIGHT
            self.screen = pygame.display.set_mode((width, height))

        self.width = width
        self.height = height
        pygame.display.set_caption("Splatter")
        self.clock = pygame.time.Clock()

        vis_params = vis_params if vis_params is not None else {}
        # Drag in pixels below which a gesture counts as a tap.
        self.swipe_threshold = vis_params.get('swipe_threshold', 10)
        self.drag_velocity_scale = vis_params.get('drag_velocity_scale', 3.0)
        self.drag_force_scale = vis_params.get('drag_force_scale', 4.0)
        self.default_force = vis_params.get('default_force', 0.5)

        self.drag_start: Optional[Tuple[int, int]] = None
        self.frame_pending = True

        self.screen.fill(BACKGROUND_COLOR)
        pygame.display.flip()

        logging.info(f"Visualizer initialized with Pygame display ({width}x{height}).")

    def attach(self, scene: SplatterScene) -> None:
        """Registers for redraw notifications from the scene."""
        scene.add_redraw_listener(self._on_redraw)

    def _on_redraw(self, scene: SplatterScene) -> None:
        self.frame_pending = True

    def _gesture_to_impact(self, start: Tuple[int, int], end: Tuple[int, int]) -> Tuple[Tuple[float, float], Tuple[float, float], float]:
        """
        Converts a press/release pair into (position, velocity, force) in
        normalized viewport units. The impact lands where the button is released.
        """
        position = (end[0] / self.width, end[1] / self.height)
        dx = end[0] - start[0]
        dy = end[1] - start[1]
        if math.hypot(dx, dy) < self.swipe_threshold:
            return position, (0.0, 0.0), self.default_force

        nx = dx / self.width
        ny = dy / self.height
        velocity = (nx * self.drag_velocity_scale, ny * self.drag_velocity_scale)
        force = min(math.hypot(nx, ny) * self.drag_force_scale, 1.0)
        return position, velocity, force

    def _handle_key(self, key: int, scene: SplatterScene) -> bool:
        if key == pygame.K_ESCAPE:
            logging.info("ESC key pressed. Shutting down visualizer.")
            return False
        if key == pygame.K_c:
            scene.clear()
        elif key == pygame.K_h:
            scene.set_heightened(not scene.heightened)
        elif key == pygame.K_d:
            dramatic = scene.compositor.get_pass("dramatic")
            if dramatic is not None:
                scene.set_pass_enabled("dramatic", not dramatic.enabled)
        return True

    def _blit_frame(self, scene: SplatterScene) -> None:
        image = scene.render()
        if image is None:
            # Nothing to show; the frame is dropped rather than retried.
            self.frame_pending = False
            return

        surface = pygame.display.get_surface()
        if surface is None:
            logging.debug("No display surface available, dropping frame.")
            self.frame_pending = False
            return

        # surfarray expects (W, H, 3).
        frame = pygame.surfarray.make_surface(to_rgb8(image).swapaxes(0, 1))
        if frame.get_size() != (self.width, self.height):
            frame = pygame.transform.smoothscale(frame, (self.width, self.height))
        surface.blit(frame, (0, 0))
        pygame.display.flip()
        self.frame_pending = False

    def draw(self, scene: SplatterScene) -> bool:
        """
        Handles events and redraws the scene when it has changed.

        Returns:
            bool: False if the application should exit, True otherwise.
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False

            if event.type == pygame.KEYDOWN:
                if not self._handle_key(event.key, scene):
                    return False

            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self.drag_start = event.pos

            if event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                if self.drag_start is not None:
                    position, velocity, force = self._gesture_to_impact(self.drag_start, event.pos)
                    scene.add_impact(position, velocity, force)
                    self.drag_start = None

        if self.frame_pending or scene.needs_redraw:
            self._blit_frame(scene)

        self.clock.tick(FPS)
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.quit()
