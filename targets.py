# targets.py
"""
Shape-to-target-point mapping.

This module converts a rasterized silhouette mask into a set of world-space
target points (SlotAllocator / compute_targets) and hands those points out
to the live particles (assign_targets). Points are bucketed into one
vertical slice per character of the shape token so every letter of a word
gets a share of the swarm proportional to the slice count, not to how many
pixels its glyph happens to cover.
"""
import logging
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

from constants import (
    MULTI_COLOR_TOKEN, MULTI_COLOR_HUES, SHAPE_BOX_FILL, SHAPE_BOX_ASPECT,
    RASTER_RESOLUTIONS
)

if TYPE_CHECKING:
    from particle import Particle
    from shapes import ShapeRasterizer

# --- Data Contracts ---
#
# compute_targets(token: str, mask: np.ndarray, desired_count: int,
#                 box: ShapeBox, rng: np.random.Generator) -> TargetSet:
#   - Inputs:
#     - mask: bool array of shape (H, W); True marks an "on" pixel.
#     - desired_count: the swarm size the shape should accommodate.
#     - box: destination centre and size in world coordinates.
#   - Outputs: TargetSet with len == min(desired_count, on-pixel count),
#     or an empty TargetSet if the mask has no on-pixels.
#   - Invariants:
#     - buckets[k] is the bucket index of sources[k]'s x coordinate.
#     - hues[k] is None unless token == MULTI_COLOR_TOKEN.
#
# assign_targets(particles, targets: TargetSet, enable: bool,
#                rng: np.random.Generator) -> None:
#   - Side Effects: enable=False clears every particle's target. enable=True
#     with a non-empty set gives particle i the target at
#     permutation[i % len(targets)]; with an empty set it changes nothing.

@dataclass(frozen=True)
class ShapeBox:
    """Destination rectangle, given by centre and size, in world units."""
    cx: float
    cy: float
    width: float
    height: float

    @property
    def center(self) -> np.ndarray:
        return np.array([self.cx, self.cy], dtype=np.float64)

def shape_box(canvas_width: float, canvas_height: float) -> ShapeBox:
    """The box a shape is fitted into for a canvas of the given size."""
    w = min(canvas_width, canvas_height) * SHAPE_BOX_FILL
    h = w * SHAPE_BOX_ASPECT
    return ShapeBox(canvas_width * 0.5, canvas_height * 0.5, w, h)

@dataclass(frozen=True)
class TargetSet:
    """
    Immutable target points for one shape/box/count.

    points and sources are (k, 2) float arrays; buckets is (k,) int. The
    arrays are read-only and hues is a tuple; a new shape, box or count
    produces a new TargetSet.
    """
    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.float64))
    hues: Tuple[Optional[float], ...] = ()
    buckets: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    sources: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.float64))

    def __post_init__(self):
        object.__setattr__(self, 'hues', tuple(self.hues))
        for arr in (self.points, self.buckets, self.sources):
            arr.flags.writeable = False

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

def bucket_indices(xs: np.ndarray, min_x: float, content_w: float, n_buckets: int) -> np.ndarray:
    """Equal-width vertical slice index for each x coordinate."""
    norm = (xs - min_x) / content_w
    idx = np.floor(norm * n_buckets).astype(np.int64)
    return np.clip(idx, 0, n_buckets - 1)

def bucket_quotas(total: int, n_buckets: int) -> List[int]:
    """Splits total as evenly as possible; the first buckets take the remainder."""
    base, remainder = divmod(total, n_buckets)
    return [base + 1 if i < remainder else base for i in range(n_buckets)]

def compute_targets(token: str, mask: np.ndarray, desired_count: int,
                    box: ShapeBox, rng: np.random.Generator) -> TargetSet:
    """
    Samples target points from a mask and maps them into the destination box.

    Args:
        token (str): The shape token; its length sets the bucket count.
        mask (np.ndarray): Boolean (H, W) silhouette.
        desired_count (int): Swarm size to provide slots for.
        box (ShapeBox): Where the shape should appear in the world.
        rng (np.random.Generator): Source for all sampling.

    Returns:
        TargetSet: The selected points, hue overrides, bucket ids and
        source pixels.
    """
    ys, xs = np.nonzero(np.asarray(mask, dtype=bool))
    if xs.size == 0:
        logging.debug(f"Mask for shape '{token}' is empty; no targets produced.")
        return TargetSet()

    # Row-major scan order, as (x, y) pairs.
    base_pts = np.column_stack((xs, ys)).astype(np.float64)

    min_x, max_x = base_pts[:, 0].min(), base_pts[:, 0].max()
    min_y, max_y = base_pts[:, 1].min(), base_pts[:, 1].max()
    content_w = max(1.0, max_x - min_x)
    content_h = max(1.0, max_y - min_y)

    n_buckets = max(1, len(token))
    pixel_buckets = bucket_indices(base_pts[:, 0], min_x, content_w, n_buckets)

    target_total = int(min(max(0, int(desired_count)), len(base_pts)))
    quotas = bucket_quotas(target_total, n_buckets)

    multi_color = token == MULTI_COLOR_TOKEN
    chosen: List[np.ndarray] = []

    for b, need in enumerate(quotas):
        members = np.flatnonzero(pixel_buckets == b)
        if members.size == 0 or need == 0:
            continue

        if members.size >= need:
            picks = rng.choice(members, size=need, replace=False)
        else:
            extra = rng.choice(members, size=need - members.size, replace=True)
            picks = np.concatenate((members, extra))
        chosen.append(picks)

    selected = np.concatenate(chosen) if chosen else np.zeros(0, dtype=np.int64)

    shortfall = target_total - selected.size
    if shortfall > 0:
        # Only reachable when some bucket had no pixels at all.
        logging.debug(f"Topping up {shortfall} targets for '{token}' from the full mask.")
        topup = rng.integers(0, len(base_pts), size=shortfall)
        selected = np.concatenate((selected, topup))

    sources = base_pts[selected]
    buckets = pixel_buckets[selected]

    scale = min(box.width / content_w, box.height / content_h)
    content_center = np.array([min_x + content_w * 0.5, min_y + content_h * 0.5])
    points = box.center + (sources - content_center) * scale

    if multi_color:
        hues = [float(MULTI_COLOR_HUES[b % len(MULTI_COLOR_HUES)]) for b in buckets]
    else:
        hues = [None] * len(points)

    logging.debug(
        f"Computed {len(points)} targets for '{token}' from {len(base_pts)} on-pixels "
        f"in {n_buckets} buckets (quotas {quotas})."
    )
    return TargetSet(points=points, hues=hues, buckets=buckets, sources=sources)

def assign_targets(particles: Sequence["Particle"], targets: TargetSet, enable: bool,
                   rng: np.random.Generator) -> None:
    """Distributes targets over the particles through a shuffled wrap-around index."""
    if not enable:
        for p in particles:
            p.set_target(None)
        return

    if targets.is_empty:
        return

    order = rng.permutation(len(targets))
    usable = len(order)
    for i, p in enumerate(particles):
        idx = order[i % usable]
        p.set_target(targets.points[idx], targets.hues[idx])

class SlotAllocator:
    """
    Owns the current target set and recomputes it when its inputs change.
    """
    def __init__(self, rasterizer: "ShapeRasterizer", rng: np.random.Generator,
                 high_detail: bool = False):
        self.rasterizer = rasterizer
        self.rng = rng
        self.high_detail = high_detail
        self.targets = TargetSet()
        self._key: Optional[Tuple] = None

    @property
    def resolution(self) -> Tuple[int, int]:
        return RASTER_RESOLUTIONS[bool(self.high_detail)]

    def recompute(self, token: str, desired_count: int, box: ShapeBox) -> TargetSet:
        """Rasterizes token at the current resolution and rebuilds the targets."""
        width, height = self.resolution
        mask = self.rasterizer.rasterize(token, width, height)
        self.targets = compute_targets(token, mask, desired_count, box, self.rng)
        self._key = (token, desired_count, box, self.high_detail)
        logging.info(
            f"Targets recomputed for '{token}': {len(self.targets)} points "
            f"at {width}x{height}."
        )
        return self.targets

    def is_stale(self, token: str, desired_count: int, box: ShapeBox) -> bool:
        return self._key != (token, desired_count, box, self.high_detail)
