# particle.py
"""
Steering agents and the swarm that holds them.

This module defines the Particle class, a single steering agent with its
own position, velocity and acceleration accumulator, and the Swarm class,
which is responsible for creating, resizing and snapshotting the ordered
particle collection.
"""
import logging
import numpy as np
from typing import Dict, Any, List, Optional, TYPE_CHECKING

from constants import (
    RAINBOW_HUES, MIN_PARTICLES, MAX_PARTICLES, DEFAULT_PARTICLES, FIREWORK_WINDOW_MS,
    FIREWORK_RADIUS, FIREWORK_IMPULSE
)
from transitions import TransitionEffect
from utils import limit, set_magnitude, from_angle, map_range

if TYPE_CHECKING:
    from flowfield import FlowField
    from transitions import TransitionContext

# --- Data Contracts ---
#
# class Particle:
#   - __init__(self, x: float, y: float, hue: float, velocity: np.ndarray,
#              params: Dict[str, Any]):
#     - Inputs:
#       - params: "max_speed", "max_force", "target_force",
#         "capture_radius", "slowdown_radius" (all optional).
#     - Invariants:
#       - self.pos, self.vel, self.acc are float64 arrays of shape (2,).
#       - After integrate(), |self.vel| <= self.max_speed and self.acc == 0.
#       - self.target_hue is None whenever self.target is None.
#
#   - Force methods (wander, seek_target, apply_transition) only add to
#     self.acc; they never touch pos or vel.
#
# class Swarm:
#   - __init__(self, params: Dict[str, Any], width: int, height: int,
#              rng: np.random.Generator):
#     - Inputs:
#       - params: "particle_count" plus the Particle parameters.
#     - Side Effects: Spawns the initial particles.
#
#   - resize(self, count: int) -> int:
#     - Outputs: the clamped count actually applied.
#     - Side Effects: appends new particles at the tail or truncates the
#       tail. Surviving particles are untouched.

class Particle:
    """
    A single steering agent: wanders, seeks a goal, or follows a
    transition effect.
    """
    def __init__(self, x: float, y: float, hue: float, velocity: np.ndarray,
                 params: Optional[Dict[str, Any]] = None):
        params = params or {}
        self.pos = np.array([x, y], dtype=np.float64)
        self.vel = np.asarray(velocity, dtype=np.float64).copy()
        self.acc = np.zeros(2, dtype=np.float64)

        self.max_speed = float(params.get('max_speed', 2.0))
        self.max_force = float(params.get('max_force', 0.04))
        self.target_force = float(params.get('target_force', 0.07))
        self.capture_radius = float(params.get('capture_radius', 3.0))
        self.slowdown_radius = float(params.get('slowdown_radius', 80.0))

        self.hue = float(hue)
        self.target: Optional[np.ndarray] = None
        self.target_hue: Optional[float] = None

    @property
    def display_hue(self) -> float:
        """The hue to colour this particle with: its slot's override, if any."""
        return self.target_hue if self.target_hue is not None else self.hue

    def apply_force(self, force: np.ndarray) -> None:
        self.acc += force

    def set_target(self, target: Optional[np.ndarray], target_hue: Optional[float] = None) -> None:
        """Sets or clears the goal point. Targets are copied, never shared."""
        if target is None:
            self.target = None
            self.target_hue = None
            return
        self.target = np.array(target, dtype=np.float64)
        self.target_hue = float(target_hue) if target_hue is not None else None

    def _steer_towards(self, desired: np.ndarray, max_force: float) -> None:
        self.apply_force(limit(desired - self.vel, max_force))

    def wander(self, field: "FlowField", frame: int, angle: Optional[float] = None) -> None:
        """
        Steers along the heading sampled from the noise field at this position.

        A heading already sampled for this tick (see FlowField.angle_many)
        can be passed as angle to skip the per-particle lookup.
        """
        if angle is None:
            angle = field.angle(self.pos[0], self.pos[1], frame)
        desired = from_angle(angle) * self.max_speed
        self._steer_towards(desired, self.max_force)

    def seek_target(self, enabled: bool) -> None:
        """
        Steers toward the assigned target, slowing down on approach.

        Does nothing when disabled, without a target, or once inside the
        capture radius.
        """
        if not enabled or self.target is None:
            return

        desired = self.target - self.pos
        d = np.hypot(desired[0], desired[1])
        if d < self.capture_radius:
            return

        speed = self.max_speed * 0.9
        if d < self.slowdown_radius:
            speed = map_range(d, 0, self.slowdown_radius, self.max_speed * 0.2, self.max_speed * 0.9)

        self._steer_towards(set_magnitude(desired, speed), self.target_force)

    def apply_transition(self, context: Optional["TransitionContext"], field: "FlowField",
                         frame: int, now_ms: float,
                         separation: Optional[np.ndarray] = None,
                         neighbours: int = 0,
                         angle: Optional[float] = None) -> None:
        """
        Adds the forces of the active transition effect.

        Args:
            context (TransitionContext): The running transition, or None.
            field (FlowField): Noise field for effects that keep wandering.
            frame (int): Global frame counter, drives wobble phases.
            now_ms (float): Current time, used for firework burst windows.
            separation (np.ndarray): This particle's averaged away-vector
                from the wide school neighbour scan.
            neighbours (int): Number of neighbours that contributed to it.
            angle (float): This tick's pre-sampled flow field heading, if any.
        """
        effect = context.effect if context is not None else TransitionEffect.NONE

        if effect is TransitionEffect.FIREWORKS:
            self._fireworks(context, now_ms)
            self.wander(field, frame, angle)

        elif effect is TransitionEffect.SCHOOL and context.heading is not None:
            desired = context.heading * (self.max_speed * 0.9)
            self._steer_towards(desired, self.max_force * 1.6)
            wobble = np.sin(frame * 0.06 + self.pos[0] * 0.01) * 0.06
            self.apply_force(np.array([0.0, wobble]))

        elif effect is TransitionEffect.SCHOOL_WIDE and context.heading is not None:
            desired = context.heading * (self.max_speed * 0.9)
            self._steer_towards(desired, self.max_force * 1.3)

            if neighbours > 0 and separation is not None:
                away = set_magnitude(np.asarray(separation, dtype=np.float64), self.max_speed)
                self._steer_towards(away, self.max_force * 1.9)

            wobble = np.sin(frame * 0.04 + self.pos[1] * 0.008) * 0.05
            self.apply_force(np.array([0.0, wobble]))

        elif effect is TransitionEffect.SWAN:
            self._swan(context, frame)

        else:
            # EXPLOSION kicks velocities once at start; afterwards, and for
            # NONE or a school without a heading, the particle just wanders.
            self.wander(field, frame, angle)

    def _fireworks(self, context: "TransitionContext", now_ms: float) -> None:
        for burst in context.bursts:
            dt = now_ms - burst.start_ms
            if dt < 0 or dt > FIREWORK_WINDOW_MS:
                continue
            to_particle = self.pos - burst.position
            d = np.hypot(to_particle[0], to_particle[1])
            if 2 < d < FIREWORK_RADIUS:
                strength = FIREWORK_IMPULSE * (1 - d / FIREWORK_RADIUS)
                self.apply_force(to_particle / d * strength)

    def _swan(self, context: "TransitionContext", frame: int) -> None:
        to_center = context.center - self.pos
        dist = np.hypot(to_center[0], to_center[1])
        if dist <= 0:
            return

        orbit = np.array([-to_center[1], to_center[0]]) / dist
        self._steer_towards(orbit * (self.max_speed * 0.6), self.max_force * 1.5)

        center_strength = map_range(dist, 0, max(context.canvas), 0.06, 0.02)
        self.apply_force(to_center / dist * center_strength)

        bob = np.sin(frame * 0.05 + self.pos[0] * 0.01) * 0.03
        self.apply_force(np.array([0.0, bob]))

    def integrate(self) -> None:
        """Semi-implicit Euler step: velocity first, then position."""
        self.vel = limit(self.vel + self.acc, self.max_speed)
        self.pos += self.vel
        self.acc[:] = 0.0

    def wrap_bounds(self, width: float, height: float, margin: float) -> None:
        """Toroidal wraparound with a margin beyond each edge."""
        if self.pos[0] < -margin:
            self.pos[0] = width + margin
        if self.pos[0] > width + margin:
            self.pos[0] = -margin
        if self.pos[1] < -margin:
            self.pos[1] = height + margin
        if self.pos[1] > height + margin:
            self.pos[1] = -margin

class Swarm:
    """
    An ordered collection of particles that grows at the tail and shrinks
    from the tail.
    """
    def __init__(self, params: Dict[str, Any], width: int, height: int,
                 rng: np.random.Generator):
        """
        Initializes the swarm.

        Args:
            params (Dict[str, Any]): Simulation parameters from config.
            width (int): The width of the spawn area.
            height (int): The height of the spawn area.
            rng (np.random.Generator): Shared simulation random source.
        """
        self.params = params
        self.width = width
        self.height = height
        # Rule 12: All randomness is controlled by a single master seed.
        self.rng = rng
        self.particles: List[Particle] = []

        count = clamp_count(params.get('particle_count', DEFAULT_PARTICLES))
        self._spawn(count)

        logging.info(f"Swarm initialized with {len(self.particles)} particles.")

    def __len__(self) -> int:
        return len(self.particles)

    def __iter__(self):
        return iter(self.particles)

    def _spawn(self, count: int) -> None:
        for _ in range(count):
            x = self.rng.uniform(0, self.width)
            y = self.rng.uniform(0, self.height)
            hue = RAINBOW_HUES[int(self.rng.integers(len(RAINBOW_HUES)))]
            velocity = from_angle(self.rng.uniform(0, 2 * np.pi)) * self.rng.uniform(0.4, 1.2)
            self.particles.append(Particle(x, y, hue, velocity, self.params))

    def set_bounds(self, width: int, height: int) -> None:
        """Updates the spawn area used by later growth."""
        self.width = width
        self.height = height

    def resize(self, count: int) -> int:
        target = clamp_count(count)
        current = len(self.particles)
        if target > current:
            self._spawn(target - current)
        elif target < current:
            del self.particles[target:]
        if target != current:
            logging.info(f"Swarm resized from {current} to {target} particles.")
        return target

    def positions(self) -> np.ndarray:
        if not self.particles:
            return np.zeros((0, 2), dtype=np.float64)
        return np.array([p.pos for p in self.particles], dtype=np.float64)

    def velocities(self) -> np.ndarray:
        if not self.particles:
            return np.zeros((0, 2), dtype=np.float64)
        return np.array([p.vel for p in self.particles], dtype=np.float64)

    def hues(self) -> np.ndarray:
        return np.array([p.display_hue for p in self.particles], dtype=np.float64)

def clamp_count(count: int) -> int:
    """Constrains a requested swarm size to the supported range."""
    return int(min(MAX_PARTICLES, max(MIN_PARTICLES, int(count))))
