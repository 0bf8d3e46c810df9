# flowfield.py
"""
Coherent noise flow field used for ambient wandering.

The field is 3D value noise over (x * scale, y * scale, frame * speed),
summed over a few octaves. Sampling it at nearby points or nearby times
gives nearby values, which is what turns a heading lookup into smooth,
organic motion instead of jitter.
"""
import logging
import numpy as np
from numba import jit

# --- Data Contracts ---
#
# class FlowField:
#   - __init__(self, rng: np.random.Generator, noise_scale: float,
#              noise_speed: float, octaves: int = 4):
#     - Inputs:
#       - rng: Generator used once to build the permutation table.
#       - noise_scale: spatial frequency applied to x and y.
#       - noise_speed: temporal frequency applied to the frame counter.
#     - Side Effects: Builds a 256-entry int64 permutation table.
#
#   - sample(self, x: float, y: float, frame: int) -> float:
#     - Outputs: noise value in [0, 1).
#
#   - angle(self, x: float, y: float, frame: int) -> float:
#     - Outputs: heading in radians, sample * 4*pi.
#
#   - sample_many(self, positions: np.ndarray, frame: int) -> np.ndarray:
#     - Inputs: positions of shape (N, 2).
#     - Outputs: array of shape (N,) of noise values.
#
#   - angle_many(self, positions: np.ndarray, frame: int) -> np.ndarray:
#     - Outputs: array of shape (N,) of headings, equal to angle() at each
#       position. One compiled call for the whole swarm.

PERMUTATION_SIZE = 256
OCTAVE_FALLOFF = 0.5

@jit(nopython=True)
def _fade(t):
    return t * t * (3.0 - 2.0 * t)

@jit(nopython=True)
def _lattice(perm, ix, iy, iz):
    """Pseudo-random value in [0, 1] attached to an integer lattice point."""
    h = perm[(perm[(perm[ix & 255] + iy) & 255] + iz) & 255]
    return h / 255.0

@jit(nopython=True)
def _value_noise3(perm, x, y, z):
    """Single octave of smoothly interpolated 3D value noise."""
    fx = np.floor(x)
    fy = np.floor(y)
    fz = np.floor(z)
    ix = int(fx)
    iy = int(fy)
    iz = int(fz)
    u = _fade(x - fx)
    v = _fade(y - fy)
    w = _fade(z - fz)

    c000 = _lattice(perm, ix, iy, iz)
    c100 = _lattice(perm, ix + 1, iy, iz)
    c010 = _lattice(perm, ix, iy + 1, iz)
    c110 = _lattice(perm, ix + 1, iy + 1, iz)
    c001 = _lattice(perm, ix, iy, iz + 1)
    c101 = _lattice(perm, ix + 1, iy, iz + 1)
    c011 = _lattice(perm, ix, iy + 1, iz + 1)
    c111 = _lattice(perm, ix + 1, iy + 1, iz + 1)

    x00 = c000 + (c100 - c000) * u
    x10 = c010 + (c110 - c010) * u
    x01 = c001 + (c101 - c001) * u
    x11 = c011 + (c111 - c011) * u
    y0 = x00 + (x10 - x00) * v
    y1 = x01 + (x11 - x01) * v
    return y0 + (y1 - y0) * w

@jit(nopython=True)
def _fractal_noise3(perm, x, y, z, octaves):
    """Octave sum of value noise, normalised back into [0, 1]."""
    total = 0.0
    amplitude = 0.5
    norm = 0.0
    frequency = 1.0
    for _ in range(octaves):
        total += _value_noise3(perm, x * frequency, y * frequency, z * frequency) * amplitude
        norm += amplitude
        amplitude *= OCTAVE_FALLOFF
        frequency *= 2.0
    value = total / norm
    # Keep the result strictly below 1 so angle() stays inside [0, 4*pi).
    if value >= 1.0:
        value = 0.9999999
    return value

@jit(nopython=True)
def _fractal_noise_many(perm, positions, scale, z, octaves):
    n = positions.shape[0]
    out = np.empty(n, dtype=np.float64)
    for i in range(n):
        out[i] = _fractal_noise3(perm, positions[i, 0] * scale, positions[i, 1] * scale, z, octaves)
    return out

class FlowField:
    """
    A seeded, time-varying scalar noise field interpreted as headings.
    """
    def __init__(self, rng: np.random.Generator, noise_scale: float,
                 noise_speed: float, octaves: int = 4):
        self.noise_scale = float(noise_scale)
        self.noise_speed = float(noise_speed)
        self.octaves = int(octaves)
        self.perm = rng.permutation(PERMUTATION_SIZE).astype(np.int64)
        logging.debug(
            f"FlowField created (scale={self.noise_scale}, speed={self.noise_speed}, "
            f"octaves={self.octaves})."
        )

    def sample(self, x: float, y: float, frame: int) -> float:
        return _fractal_noise3(
            self.perm,
            float(x) * self.noise_scale,
            float(y) * self.noise_scale,
            float(frame) * self.noise_speed,
            self.octaves,
        )

    def angle(self, x: float, y: float, frame: int) -> float:
        """Heading in radians; the noise value spans two full turns."""
        return self.sample(x, y, frame) * 4.0 * np.pi

    def sample_many(self, positions: np.ndarray, frame: int) -> np.ndarray:
        positions = np.ascontiguousarray(positions, dtype=np.float64)
        return _fractal_noise_many(
            self.perm, positions, self.noise_scale,
            float(frame) * self.noise_speed, self.octaves
        )

    def angle_many(self, positions: np.ndarray, frame: int) -> np.ndarray:
        """Headings for every position in one batched noise evaluation."""
        return self.sample_many(positions, frame) * 4.0 * np.pi
