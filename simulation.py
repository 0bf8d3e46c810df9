# simulation.py
"""
Handles the roam/assemble cycle and advances the swarm one tick at a time.

This module defines the CycleController, a timed state machine that
decides when the swarm roams, when it assembles into the next shape and
which transition effect plays when it lets go, and the Simulation class,
the single context object that owns the swarm, the target allocator, the
controller and the shared random source, and applies external commands.
"""
import logging
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional, Sequence, Tuple

from constants import SHAPES, PARTICLE_STEP, MIN_CANVAS_SIZE, SCHOOL_SPACING
from flowfield import FlowField
from particle import Swarm
from shapes import ShapeRasterizer, PygameShapeRasterizer
from targets import SlotAllocator, assign_targets, shape_box
from transitions import (
    TransitionContext, TransitionEffect, choose_effect, separation_vectors
)

# --- Data Contracts ---
#
# class CycleController:
#   - __init__(self, params: Dict[str, Any], shapes: Sequence[str],
#              rng: np.random.Generator, start_ms: float = 0.0):
#     - Inputs:
#       - params: "cycle_duration_ms", "roam_duration_ms",
#         "transition_duration_ms" (all optional).
#       - shapes: non-empty shape token sequence.
#     - Raises: ValueError if a duration is not positive, roam is not
#       shorter than the cycle, or shapes is empty.
#
#   - update(self, now_ms: float) -> CycleUpdate:
#     - Side Effects: in auto mode recomputes the phase from the timer;
#       advances the shape on ROAMING -> ASSEMBLING; picks a transition on
#       ASSEMBLING -> ROAMING; expires a transition after its duration.
#     - Invariants: at most one effect is active; an effect only becomes
#       active on a flip from ASSEMBLING to ROAMING.
#
# class Simulation:
#   - __init__(self, params: Dict[str, Any], width: int, height: int,
#              rasterizer: Optional[ShapeRasterizer] = None,
#              rng: Optional[np.random.Generator] = None,
#              start_ms: float = 0.0):
#     - Inputs:
#       - params: the "simulation_parameters" section of config.json.
#       - rng: overrides the generator built from params["seed"].
#     - Side Effects: spawns the swarm and computes the first targets.
#
#   - step(self, now_ms: float) -> None:
#     - Side Effects: mutates every particle once. Particle count is
#       unchanged by a step.

class CyclePhase(Enum):
    ROAMING = 'roaming'
    ASSEMBLING = 'assembling'

@dataclass
class CycleUpdate:
    """What changed during one CycleController.update call."""
    phase_changed: bool = False
    shape_changed: bool = False
    transition_started: bool = False
    transition_ended: bool = False
    in_transition: bool = False

class CycleController:
    """
    Timed state machine sequencing roam -> assemble -> transition -> roam.
    """
    def __init__(self, params: Dict[str, Any], shapes: Sequence[str],
                 rng: np.random.Generator, start_ms: float = 0.0):
        self.cycle_duration = float(params.get('cycle_duration_ms', 30000))
        self.roam_duration = float(params.get('roam_duration_ms', 10000))
        self.transition_duration = float(params.get('transition_duration_ms', 5000))
        self.shapes = list(shapes)
        self.rng = rng

        # Rule 7: Enforce data contracts. Validate config on initialization.
        if min(self.cycle_duration, self.roam_duration, self.transition_duration) <= 0:
            msg = (
                f"Configuration error: cycle ({self.cycle_duration}), roam "
                f"({self.roam_duration}) and transition ({self.transition_duration}) "
                f"durations must all be positive."
            )
            logging.critical(msg)
            raise ValueError(msg)
        if self.roam_duration >= self.cycle_duration:
            msg = (
                f"Configuration error: roam duration {self.roam_duration} ms must be "
                f"shorter than the cycle duration {self.cycle_duration} ms."
            )
            logging.critical(msg)
            raise ValueError(msg)
        if not self.shapes:
            msg = "Configuration error: the shape sequence is empty."
            logging.critical(msg)
            raise ValueError(msg)

        self.shape_index = 0
        self.auto_cycle = True
        self.assembling = False
        self._prev_assembling = False
        self.cycle_origin_ms = float(start_ms)

        self.effect = TransitionEffect.NONE
        self.effect_start_ms = 0.0

        logging.info(
            f"CycleController initialized: {len(self.shapes)} shapes, "
            f"{self.cycle_duration:.0f} ms cycle, {self.roam_duration:.0f} ms roam, "
            f"{self.transition_duration:.0f} ms transitions."
        )

    @property
    def phase(self) -> CyclePhase:
        return CyclePhase.ASSEMBLING if self.assembling else CyclePhase.ROAMING

    @property
    def shape_token(self) -> str:
        return self.shapes[self.shape_index]

    def _refresh_transition(self, now_ms: float) -> bool:
        """Expires a finished effect; returns whether one is still running."""
        if self.effect is TransitionEffect.NONE:
            return False
        if now_ms - self.effect_start_ms < self.transition_duration:
            return True
        logging.info(f"Transition '{self.effect.value}' finished.")
        self.effect = TransitionEffect.NONE
        return False

    def _start_transition(self, now_ms: float) -> bool:
        self.effect_start_ms = float(now_ms)
        self.effect = choose_effect(self.shape_token, self.rng)
        if self.effect is TransitionEffect.NONE:
            logging.info(f"Leaving '{self.shape_token}' without a transition effect.")
            return False
        logging.info(f"Leaving '{self.shape_token}' with transition '{self.effect.value}'.")
        return True

    def _shift(self, step: int) -> None:
        self.shape_index = (self.shape_index + step) % len(self.shapes)

    def update(self, now_ms: float) -> CycleUpdate:
        if self.auto_cycle:
            t = (now_ms - self.cycle_origin_ms) % self.cycle_duration
            self.assembling = t > self.roam_duration

        was_active = self.effect is not TransitionEffect.NONE
        result = CycleUpdate(in_transition=self._refresh_transition(now_ms))
        result.transition_ended = was_active and not result.in_transition

        if self.assembling != self._prev_assembling:
            result.phase_changed = True
            leaving_shape = self._prev_assembling and not self.assembling

            if self.assembling and self.auto_cycle:
                self._shift(1)
                result.shape_changed = True
                logging.info(f"Assembling shape '{self.shape_token}'.")
            elif leaving_shape:
                logging.info(f"Releasing shape '{self.shape_token}'; roaming.")

            if leaving_shape and self.auto_cycle:
                result.transition_started = self._start_transition(now_ms)

            self._prev_assembling = self.assembling

        return result

    def shift_shape(self, step: int) -> None:
        """Manual shape change: stops the timer and assembles right away."""
        self.auto_cycle = False
        self.effect = TransitionEffect.NONE
        self._shift(step)
        self.assembling = True
        self._prev_assembling = True
        logging.info(f"Manual shape change to '{self.shape_token}'.")

    def resume_auto(self) -> None:
        if not self.auto_cycle:
            logging.info("Automatic shape cycling resumed.")
        self.auto_cycle = True

def clamp_canvas(width: float, height: float) -> Tuple[int, int]:
    """Floors canvas dimensions to the smallest size the shapes can scale into."""
    return max(MIN_CANVAS_SIZE, int(width)), max(MIN_CANVAS_SIZE, int(height))

class Simulation:
    """
    The simulation context: owns all swarm state and advances it per tick.
    """
    def __init__(self, params: Dict[str, Any], width: int, height: int,
                 rasterizer: Optional[ShapeRasterizer] = None,
                 rng: Optional[np.random.Generator] = None,
                 start_ms: float = 0.0):
        """
        Initializes the simulation environment.

        Args:
            params (Dict[str, Any]): Simulation parameters from config.
            width (int): Canvas width in world units.
            height (int): Canvas height in world units.
            rasterizer (ShapeRasterizer): Shape-to-mask capability;
                defaults to the pygame implementation.
            rng (np.random.Generator): Shared random source; defaults to
                one seeded from params["seed"].
            start_ms (float): Clock value the cycle timer counts from.
        """
        self.params = params
        # Rule 12: All randomness is controlled by a single master seed.
        self.rng = rng if rng is not None else np.random.default_rng(params.get('seed'))

        self.width, self.height = clamp_canvas(width, height)
        self.edge_margin = float(params.get('edge_margin', 40.0))
        self.frame = 0

        self.field = FlowField(
            self.rng,
            params.get('noise_scale', 0.0008),
            params.get('noise_speed', 0.0005),
        )
        self.swarm = Swarm(params, self.width, self.height, self.rng)
        self.controller = CycleController(params, SHAPES, self.rng, start_ms)
        self.allocator = SlotAllocator(
            rasterizer if rasterizer is not None else PygameShapeRasterizer(),
            self.rng,
            bool(params.get('high_detail', False)),
        )
        self.box = shape_box(self.width, self.height)
        self.transition: Optional[TransitionContext] = None

        self._recompute_targets()

        logging.info(
            f"Simulation initialized on a {self.width}x{self.height} canvas "
            f"with {len(self.swarm)} particles."
        )

    # --- Observables ---

    @property
    def phase(self) -> CyclePhase:
        return self.controller.phase

    @property
    def shape_token(self) -> str:
        return self.controller.shape_token

    @property
    def effect(self) -> TransitionEffect:
        return self.controller.effect

    @property
    def particle_count(self) -> int:
        return len(self.swarm)

    @property
    def auto_cycle(self) -> bool:
        return self.controller.auto_cycle

    @property
    def high_detail(self) -> bool:
        return self.allocator.high_detail

    @property
    def max_speed(self) -> float:
        return float(self.params.get('max_speed', 2.0))

    def snapshot(self) -> Dict[str, np.ndarray]:
        return {
            'positions': self.swarm.positions(),
            'velocities': self.swarm.velocities(),
            'hues': self.swarm.hues(),
        }

    def status(self) -> Dict[str, Any]:
        return {
            'phase': self.phase.value,
            'shape': self.shape_token,
            'effect': self.effect.value,
            'particles': self.particle_count,
            'auto_cycle': self.auto_cycle,
            'high_detail': self.high_detail,
        }

    # --- Target bookkeeping ---

    def _targets_enabled(self) -> bool:
        return self.controller.assembling and self.controller.effect is TransitionEffect.NONE

    def _recompute_targets(self) -> None:
        if self.allocator.is_stale(self.shape_token, len(self.swarm), self.box):
            self.allocator.recompute(self.shape_token, len(self.swarm), self.box)

    def _reassign(self, enable: bool) -> None:
        assign_targets(self.swarm.particles, self.allocator.targets, enable, self.rng)

    # --- Tick ---

    def step(self, now_ms: float) -> None:
        """
        Executes one tick: cycle bookkeeping, forces, integration, wrapping.
        """
        update = self.controller.update(now_ms)
        in_transition = update.in_transition
        if not in_transition and self.controller.effect is TransitionEffect.NONE:
            self.transition = None

        if update.phase_changed:
            if update.shape_changed:
                self._recompute_targets()
            self._reassign(self.controller.assembling and not in_transition)
            if update.transition_started:
                self.transition = TransitionContext.start(
                    self.controller.effect, now_ms, self.controller.transition_duration,
                    (self.width, self.height), self.box.center, self.swarm.particles,
                    self.rng,
                )
        elif update.transition_ended and self.controller.assembling:
            # The swarm started assembling while the effect was still running.
            self._reassign(True)

        seek_enabled = self.controller.assembling and not in_transition
        particles = self.swarm.particles

        # Neighbour scan runs against one snapshot of the tick's start
        # positions, so no particle sees another's next-tick state.
        positions = self.swarm.positions()
        separation = counts = None
        if (in_transition and self.transition is not None
                and self.transition.effect is TransitionEffect.SCHOOL_WIDE):
            separation, counts = separation_vectors(positions, SCHOOL_SPACING)

        # Flow field headings for the whole swarm in one compiled call.
        angles = self.field.angle_many(positions, self.frame)

        for i, p in enumerate(particles):
            angle = float(angles[i])
            if in_transition:
                if separation is not None:
                    p.apply_transition(self.transition, self.field, self.frame, now_ms,
                                       separation[i], int(counts[i]), angle)
                else:
                    p.apply_transition(self.transition, self.field, self.frame, now_ms,
                                       angle=angle)
            else:
                p.wander(self.field, self.frame, angle)
            p.seek_target(seek_enabled)
            p.integrate()
            p.wrap_bounds(self.width, self.height, self.edge_margin)

        self.frame += 1

    # --- Commands ---

    def set_particle_count(self, count: int) -> int:
        """Resizes the swarm (clamped) and rebuilds targets for the new size."""
        before = len(self.swarm)
        applied = self.swarm.resize(count)
        if applied != before:
            self._recompute_targets()
            self._reassign(self._targets_enabled())
        return applied

    def add_particles(self) -> int:
        return self.set_particle_count(len(self.swarm) + PARTICLE_STEP)

    def remove_particles(self) -> int:
        return self.set_particle_count(len(self.swarm) - PARTICLE_STEP)

    def _manual_shift(self, step: int) -> None:
        self.controller.shift_shape(step)
        self.transition = None
        self._recompute_targets()
        self._reassign(True)

    def next_shape(self) -> None:
        self._manual_shift(1)

    def previous_shape(self) -> None:
        self._manual_shift(-1)

    def resume_auto(self) -> None:
        self.controller.resume_auto()

    def set_detail(self, high_detail: bool) -> None:
        self.allocator.high_detail = bool(high_detail)
        logging.info(f"Detail mode set to {'HIGH' if high_detail else 'STANDARD'}.")
        self._recompute_targets()
        self._reassign(self._targets_enabled())

    def toggle_detail(self) -> None:
        self.set_detail(not self.allocator.high_detail)

    def resize(self, width: int, height: int) -> None:
        """Adopts a new canvas size and refits the current shape into it."""
        self.width, self.height = clamp_canvas(width, height)
        self.swarm.set_bounds(self.width, self.height)
        self.box = shape_box(self.width, self.height)
        logging.info(f"Canvas resized to {self.width}x{self.height}.")
        self._recompute_targets()
        self._reassign(self._targets_enabled())
