# transitions.py
"""
Choreographed group-motion effects played when the swarm leaves a shape.

This module defines the fixed set of transition effects, the table of
shapes that always leave with a particular effect, and the ephemeral
per-transition state (burst centres, shared headings) that lives only for
the bounded duration of one effect. The O(n^2) neighbour scan used by the
wide school effect is also here, compiled with numba since it is the
throughput-limiting computation at large swarm sizes.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np
from numba import jit

from constants import (
    FORCED_TRANSITIONS, FIREWORK_BURSTS, EXPLOSION_SPEED_RANGE,
    EXPLOSION_MIN_RADIUS
)
from utils import from_angle

if TYPE_CHECKING:
    from particle import Particle

# --- Data Contracts ---
#
# parse_effect(tag: Optional[str]) -> TransitionEffect:
#   - Unknown or missing tags map to TransitionEffect.NONE. Never raises.
#
# choose_effect(token: str, rng: np.random.Generator) -> TransitionEffect:
#   - Tokens in FORCED_TRANSITIONS always yield their mapped effect and do
#     not consume randomness. Other tokens draw uniformly from every
#     effect, NONE included.
#
# class TransitionContext:
#   - start(effect, now_ms, duration_ms, canvas, center, particles, rng)
#     -> TransitionContext:
#     - Side Effects: for EXPLOSION, overwrites every particle's velocity
#       once with an outward kick.
#   - is_active(now_ms) -> bool: True while now_ms - start_ms < duration_ms.
#
# separation_vectors(positions: np.ndarray, spacing: float)
#   -> Tuple[np.ndarray, np.ndarray]:
#   - Inputs: positions of shape (N, 2), taken at the start of the tick.
#   - Outputs: (vectors (N, 2), neighbour counts (N,)). vectors[i] is the
#     average over neighbours j closer than spacing of
#     (p_i - p_j) / |p_i - p_j|^2; zero when i has no neighbours.

class TransitionEffect(Enum):
    NONE = 'none'
    FIREWORKS = 'fireworks'
    SCHOOL = 'school'
    SCHOOL_WIDE = 'schoolWide'
    EXPLOSION = 'explosion'
    SWAN = 'swan'

ALL_EFFECTS = list(TransitionEffect)

def parse_effect(tag: Optional[str]) -> TransitionEffect:
    """Maps an effect tag to its enum member, defaulting to NONE."""
    if isinstance(tag, TransitionEffect):
        return tag
    try:
        return TransitionEffect(tag)
    except ValueError:
        logging.debug(f"Unknown transition tag {tag!r}; falling back to 'none'.")
        return TransitionEffect.NONE

def forced_effect(token: str) -> Optional[TransitionEffect]:
    tag = FORCED_TRANSITIONS.get(token)
    return parse_effect(tag) if tag is not None else None

def choose_effect(token: str, rng: np.random.Generator) -> TransitionEffect:
    """Picks the effect played when leaving the shape identified by token."""
    forced = forced_effect(token)
    if forced is not None:
        return forced
    return ALL_EFFECTS[int(rng.integers(len(ALL_EFFECTS)))]

@dataclass
class FireworkBurst:
    position: np.ndarray
    start_ms: float

@dataclass
class TransitionContext:
    """
    Effect-specific state created when a transition starts.

    Only the fields relevant to the active effect are populated: bursts for
    fireworks, heading for the two school effects. center is the shape
    centre the explosion and swan effects are organised around.
    """
    effect: TransitionEffect
    start_ms: float
    duration_ms: float
    canvas: Tuple[float, float]
    center: np.ndarray
    bursts: List[FireworkBurst] = field(default_factory=list)
    heading: Optional[np.ndarray] = None

    @classmethod
    def start(cls, effect: TransitionEffect, now_ms: float, duration_ms: float,
              canvas: Tuple[float, float], center: np.ndarray,
              particles: Sequence["Particle"],
              rng: np.random.Generator) -> "TransitionContext":
        width, height = canvas
        context = cls(
            effect=effect,
            start_ms=float(now_ms),
            duration_ms=float(duration_ms),
            canvas=(float(width), float(height)),
            center=np.asarray(center, dtype=np.float64).copy(),
        )

        if effect is TransitionEffect.FIREWORKS:
            for i in range(FIREWORK_BURSTS):
                pos = np.array([
                    rng.uniform(width * 0.2, width * 0.8),
                    rng.uniform(height * 0.2, height * 0.8),
                ])
                t0 = now_ms + i * (duration_ms / FIREWORK_BURSTS)
                context.bursts.append(FireworkBurst(position=pos, start_ms=t0))
        elif effect is TransitionEffect.SCHOOL:
            context.heading = from_angle(rng.uniform(-np.pi / 6, np.pi / 6))
        elif effect is TransitionEffect.SCHOOL_WIDE:
            context.heading = from_angle(rng.uniform(-np.pi / 4, np.pi / 4))
        elif effect is TransitionEffect.EXPLOSION:
            kick_outward(particles, context.center, rng)

        logging.info(f"Transition '{effect.value}' started at {now_ms:.0f} ms.")
        return context

    def is_active(self, now_ms: float) -> bool:
        return (now_ms - self.start_ms) < self.duration_ms

def kick_outward(particles: Sequence["Particle"], center: np.ndarray,
                 rng: np.random.Generator) -> None:
    """Resets every velocity to point away from center at a random speed."""
    low, high = EXPLOSION_SPEED_RANGE
    for p in particles:
        direction = p.pos - center
        if np.hypot(direction[0], direction[1]) < EXPLOSION_MIN_RADIUS:
            direction = rng.uniform(-1.0, 1.0, size=2)
        norm = np.hypot(direction[0], direction[1])
        if norm == 0:
            direction = np.array([1.0, 0.0])
            norm = 1.0
        p.vel = direction / norm * rng.uniform(low, high)

@jit(nopython=True)
def _separation_numba(positions, spacing):
    """
    Numba-jitted all-pairs separation scan.

    Each particle is processed independently against the same snapshot of
    positions, so the result does not depend on iteration order.
    """
    n = positions.shape[0]
    vectors = np.zeros((n, 2), dtype=np.float64)
    counts = np.zeros(n, dtype=np.int64)
    for i in range(n):
        sx = 0.0
        sy = 0.0
        count = 0
        for j in range(n):
            if i == j:
                continue
            dx = positions[i, 0] - positions[j, 0]
            dy = positions[i, 1] - positions[j, 1]
            d = np.sqrt(dx * dx + dy * dy)
            if d > 0.0 and d < spacing:
                # Unit away-vector weighted by 1/d.
                sx += dx / (d * d)
                sy += dy / (d * d)
                count += 1
        if count > 0:
            vectors[i, 0] = sx / count
            vectors[i, 1] = sy / count
        counts[i] = count
    return vectors, counts

def separation_vectors(positions: np.ndarray, spacing: float) -> Tuple[np.ndarray, np.ndarray]:
    positions = np.ascontiguousarray(positions, dtype=np.float64).reshape(-1, 2)
    return _separation_numba(positions, float(spacing))
