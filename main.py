# main.py
"""
Main entry point for the splatter field renderer.

This script orchestrates the application lifecycle:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Sets up the display and the splatter scene.
4. Runs the interactive loop, or renders a batch of impacts headless.
5. Handles clean shutdown.
"""
import argparse
import cProfile
import io
import logging
import pstats

import numpy as np

from utils import setup_logging, load_config


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive ink-splatter field renderer.")
    parser.add_argument("--config", default="config.json", help="Path to the JSON configuration.")
    parser.add_argument("--headless", action="store_true",
                        help="Render random impacts to an image instead of opening a window.")
    parser.add_argument("--impacts", type=int, default=5, help="Number of impacts in headless mode.")
    parser.add_argument("--out", default="splatter.png", help="Output image for headless mode.")
    return parser.parse_args(argv)


def is_log_step(step_num: int, log_throttle: int) -> bool:
    """True on every log_throttle-th step. A throttle of 0 or less disables step logs."""
    return log_throttle > 0 and step_num % log_throttle == 0


def run_interactive(config: dict) -> None:
    run_params = config.get('run_control', {})
    vis_params = config.get('visualization', {})

    from scene import SplatterScene
    from visualization import Visualizer

    # The visualizer determines the screen dimensions.
    visualizer = Visualizer(vis_params)
    scene = SplatterScene(config, visualizer.width, visualizer.height)
    visualizer.attach(scene)

    log_throttle = run_params.get('log_throttle_steps', 600)
    max_steps = run_params.get('max_steps', 0)  # 0 runs until the window is closed

    running = True
    step_num = 0
    while running:
        step_num += 1
        if not visualizer.draw(scene):
            running = False

        # Hot loops must throttle logs
        if is_log_step(step_num, log_throttle):
            logging.info(f"Loop step {step_num} | dots: {len(scene.buffer)} | frames: {scene.frame_count}")
            if len(scene.buffer):
                mean_elongation = np.mean(scene.snapshot.elongations)
                logging.debug(f"Step {step_num} | Mean elongation: {mean_elongation:.4f}")

        if max_steps and step_num >= max_steps:
            logging.info(f"Reached max_steps ({max_steps}). Stopping.")
            running = False

    visualizer.close()
    logging.info("Interactive loop finished.")


def run_headless(config: dict, impacts: int, out_path: str) -> None:
    import pygame

    from compositor import to_rgb8
    from constants import WINDOW_HEIGHT, WINDOW_WIDTH
    from scene import SplatterScene

    seed = config.get('generation', {}).get('seed', 12345)
    rng = np.random.default_rng(seed)
    scene = SplatterScene(config, WINDOW_WIDTH, WINDOW_HEIGHT, rng=rng)

    for _ in range(impacts):
        position = tuple(rng.uniform(0.2, 0.8, size=2))
        velocity = tuple(rng.uniform(-0.5, 0.5, size=2))
        scene.add_impact(position, velocity, force=float(rng.uniform(0.3, 1.0)))

    image = scene.render()
    if image is None:
        logging.error("Renderer unavailable, no image written.")
        return

    surface = pygame.surfarray.make_surface(to_rgb8(image).swapaxes(0, 1))
    pygame.image.save(surface, out_path)
    logging.info(f"Wrote {surface.get_width()}x{surface.get_height()} image with {len(scene.buffer)} dots to {out_path}.")


def main(argv=None):
    """
    The main function to run the application.
    """
    args = parse_args(argv)

    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"FATAL: Could not load {args.config}. Error: {e}")
        return

    setup_logging(config)
    logging.info("--- Splatter Starting ---")

    profiler = cProfile.Profile()
    profiler.enable()
    if args.headless:
        run_headless(config, args.impacts, args.out)
    else:
        run_interactive(config)
    profiler.disable()

    # --- Performance Profile Output ---
    logging.info("--- Performance Profile ---")
    s = io.StringIO()
    # Sort by cumulative time spent in the function
    stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
    stats.print_stats(20)
    logging.info(f"\n{s.getvalue()}")

    logging.info("--- Splatter Shutting Down ---")


if __name__ == "__main__":
    main()
