# main.py
"""
Main entry point for the swarm silhouette animation.

This script orchestrates the entire lifecycle:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Sets up the display, the swarm and the shape cycle.
4. Runs the main animation loop, one simulation tick per frame.
5. Handles clean shutdown.
"""
import logging
from utils import setup_logging, load_config
import numpy as np
import cProfile
import pstats
import io

DEFAULT_LOG_THROTTLE = 300

def log_interval(run_params):
    """
    Steps between progress log lines. A missing or null setting uses the
    default; zero or a negative value turns progress logging off (0).
    """
    value = run_params.get('log_throttle_steps')
    if value is None:
        return DEFAULT_LOG_THROTTLE
    return max(0, int(value))

def main():
    """
    The main function to run the animation.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config('config.json')
    except Exception as e:
        print(f"FATAL: Could not load config.json. Error: {e}")
        return

    setup_logging(config)

    logging.info("--- Swarm Silhouettes Starting ---")

    # Rule 7 (DIP): Depend on abstractions. We get config sections.
    sim_params = config.get('simulation_parameters', {})
    run_params = config.get('run_control', {})
    vis_params = config.get('visualization', {})

    import pygame
    from simulation import Simulation
    from visualization import Visualizer

    # --- Component Initialization ---
    # 1. The visualizer opens the window and so decides the canvas size.
    visualizer = Visualizer(vis_params)

    # 2. The simulation works in the same coordinates as the window.
    width, height = visualizer.size
    sim = Simulation(sim_params, width, height, start_ms=pygame.time.get_ticks())

    profiler = cProfile.Profile() if run_params.get('profile', False) else None

    log_throttle = log_interval(run_params)
    max_steps = run_params.get('max_steps') or 0

    running = True
    step_num = 0

    if profiler:
        profiler.enable()
    while running:
        sim.step(pygame.time.get_ticks())
        step_num += 1

        # The visualizer's draw method handles input and returns False on quit.
        if not visualizer.draw(sim):
            running = False

        # Rule 2.4: Hot loops must throttle logs
        if log_throttle and step_num % log_throttle == 0:
            status = sim.status()
            logging.info(
                f"Step {step_num} | phase={status['phase']} shape={status['shape']} "
                f"effect={status['effect']} dots={status['particles']}"
            )
            avg_speed = np.mean(np.linalg.norm(sim.swarm.velocities(), axis=1))
            logging.debug(f"Step {step_num} | Average Speed: {avg_speed:.4f}")

        if max_steps and step_num >= max_steps:
            logging.info(f"Reached max_steps ({max_steps}). Stopping.")
            running = False
    if profiler:
        profiler.disable()

    visualizer.close()
    logging.info("Animation loop finished.")

    if profiler:
        logging.info("--- Performance Profile ---")
        s = io.StringIO()
        # Sort by cumulative time spent in the function
        stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
        stats.print_stats(20)
        logging.info(f"\n{s.getvalue()}")

    logging.info("--- Swarm Silhouettes Shutting Down ---")


if __name__ == "__main__":
    main()
