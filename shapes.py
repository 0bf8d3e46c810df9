# shapes.py
"""
Rasterization of shape tokens into binary masks.

The simulation only needs "render token X into a W x H mask". The
ShapeRasterizer base class is that capability; PygameShapeRasterizer
implements it by drawing white-on-black into an off-screen pygame Surface,
with dedicated drawers for the icon tokens and plain centred text for
everything else.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Tuple

import numpy as np
import pygame

from constants import RASTER_THRESHOLD
from utils import map_range

# --- Data Contracts ---
#
# class ShapeRasterizer:
#   - rasterize(self, token: str, width: int, height: int) -> np.ndarray:
#     - Outputs: bool array of shape (height, width). True = "on" pixel.
#     - Invariants: never raises for an unknown token.
#
# class PygameShapeRasterizer(ShapeRasterizer):
#   - Side Effects: initializes pygame.font on first text render. Does not
#     need a display surface.

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)

Point = Tuple[float, float]

class ShapeRasterizer(ABC):
    """Turns a shape token into a silhouette mask."""

    @abstractmethod
    def rasterize(self, token: str, width: int, height: int) -> np.ndarray:
        ...

def surface_to_mask(surface: pygame.Surface, threshold: int = RASTER_THRESHOLD) -> np.ndarray:
    """Thresholds the red channel of a surface into a (height, width) bool mask."""
    red = pygame.surfarray.array3d(surface)[:, :, 0]
    # surfarray is indexed (x, y).
    return np.ascontiguousarray(red.T > threshold)

# --- Drawing helpers (rects and ellipses are positioned by their centre) ---

def _rect_center(surf: pygame.Surface, cx: float, cy: float, w: float, h: float,
                 color=WHITE) -> None:
    rect = pygame.Rect(0, 0, max(1, round(w)), max(1, round(h)))
    rect.center = (round(cx), round(cy))
    pygame.draw.rect(surf, color, rect)

def _rect_corner(surf: pygame.Surface, x: float, y: float, w: float, h: float,
                 color=WHITE) -> None:
    pygame.draw.rect(surf, color, pygame.Rect(round(x), round(y), max(1, round(w)), max(1, round(h))))

def _ellipse(surf: pygame.Surface, cx: float, cy: float, w: float, h: float,
             color=WHITE, width: int = 0) -> None:
    rect = pygame.Rect(0, 0, max(1, round(w)), max(1, round(h)))
    rect.center = (round(cx), round(cy))
    pygame.draw.ellipse(surf, color, rect, width)

def _polygon(surf: pygame.Surface, points: List[Point], color=WHITE) -> None:
    pygame.draw.polygon(surf, color, [(round(x), round(y)) for x, y in points])

def _line(surf: pygame.Surface, a: Point, b: Point, width: int) -> None:
    pygame.draw.line(surf, WHITE, (round(a[0]), round(a[1])), (round(b[0]), round(b[1])), width)

def _bezier_points(p0: Point, p1: Point, p2: Point, p3: Point, steps: int = 24) -> List[Point]:
    pts = []
    for i in range(steps + 1):
        t = i / steps
        mt = 1 - t
        x = mt**3 * p0[0] + 3 * mt**2 * t * p1[0] + 3 * mt * t**2 * p2[0] + t**3 * p3[0]
        y = mt**3 * p0[1] + 3 * mt**2 * t * p1[1] + 3 * mt * t**2 * p2[1] + t**3 * p3[1]
        pts.append((x, y))
    return pts

# --- Icon drawers ---

def draw_castle(surf: pygame.Surface, w: int, h: int) -> None:
    """Fairy-tale castle: keep, side towers, central spire, crenellated front."""
    cx = w * 0.5
    base_y = h * 0.82
    unit = min(w, h) * 0.09

    _rect_center(surf, cx, base_y - unit * 1.0, unit * 7.0, unit * 2.0)

    side_offset = unit * 3.0
    for side in (-1, 1):
        tx = cx + side * side_offset
        _rect_center(surf, tx, base_y - unit * 2.1, unit * 1.6, unit * 3.2)
        _polygon(surf, [(tx - unit * 1.0, base_y - unit * 3.7),
                        (tx + unit * 1.0, base_y - unit * 3.7),
                        (tx, base_y - unit * 4.9)])
        _rect_center(surf, tx, base_y - unit * 4.4, unit * 0.9, unit * 1.3)
        _polygon(surf, [(tx - unit * 0.7, base_y - unit * 5.0),
                        (tx + unit * 0.7, base_y - unit * 5.0),
                        (tx, base_y - unit * 5.9)])

    _rect_center(surf, cx, base_y - unit * 2.9, unit * 2.3, unit * 4.6)
    _polygon(surf, [(cx - unit * 1.5, base_y - unit * 5.0),
                    (cx + unit * 1.5, base_y - unit * 5.0),
                    (cx, base_y - unit * 6.8)])

    _rect_center(surf, cx, base_y - unit * 7.3, unit * 0.55, unit * 1.7)
    _polygon(surf, [(cx - unit * 0.5, base_y - unit * 8.0),
                    (cx + unit * 0.5, base_y - unit * 8.0),
                    (cx, base_y - unit * 9.1)])

    mini_offset = unit * 1.8
    for side in (-1, 1):
        sx = cx + side * mini_offset
        _rect_center(surf, sx, base_y - unit * 4.8, unit * 0.6, unit * 1.4)
        _polygon(surf, [(sx - unit * 0.5, base_y - unit * 5.5),
                        (sx + unit * 0.5, base_y - unit * 5.5),
                        (sx, base_y - unit * 6.3)])

    # Pennant on the spire.
    _polygon(surf, [(cx, base_y - unit * 9.1),
                    (cx + unit * 1.0, base_y - unit * 8.8),
                    (cx + unit * 0.2, base_y - unit * 8.4),
                    (cx, base_y - unit * 8.4)])

    front_w = unit * 6.0
    front_h = unit * 1.6
    front_x = cx - front_w / 2
    front_y = base_y - front_h
    _rect_corner(surf, front_x, front_y, front_w, front_h)

    tooth_w = unit * 0.6
    tooth_h = unit * 0.8
    tooth_count = 8
    for i in range(tooth_count):
        bx = front_x + i * (front_w / (tooth_count - 1))
        _rect_corner(surf, bx - tooth_w * 0.5, front_y - tooth_h, tooth_w, tooth_h)

    # Gate and windows are cut back out.
    _rect_center(surf, cx, base_y - unit * 0.8, unit * 1.6, unit * 2.2, BLACK)
    _rect_center(surf, cx, base_y - unit * 3.3, unit * 0.7, unit * 1.1, BLACK)
    _rect_center(surf, cx, base_y - unit * 4.3, unit * 0.5, unit * 0.9, BLACK)
    for side in (-1, 1):
        wx = cx + side * side_offset
        _rect_center(surf, wx, base_y - unit * 2.3, unit * 0.4, unit * 0.9, BLACK)

def draw_epcot(surf: pygame.Surface, w: int, h: int) -> None:
    """Geodesic sphere on two legs and a base."""
    cx = w * 0.5
    cy = h * 0.5
    r = min(w, h) * 0.31

    _ellipse(surf, cx, cy, r * 2, r * 2)

    rings = 6
    for i in range(1, rings + 1):
        rr = r * i / rings
        _ellipse(surf, cx, cy, rr * 2, rr * 2, width=2)

    diag_steps = 24
    for i in range(diag_steps):
        ang = 2 * math.pi * i / diag_steps
        outer = (cx + math.cos(ang) * r, cy + math.sin(ang) * r)
        inner = (cx + math.cos(ang + 0.5) * r * 0.25, cy + math.sin(ang + 0.5) * r * 0.25)
        _line(surf, inner, outer, 2)

    leg_top = cy + r * 0.6
    leg_bottom = cy + r * 1.25
    _polygon(surf, [(cx - r * 0.6, leg_top), (cx - r * 0.25, leg_top),
                    (cx - r * 0.05, leg_bottom), (cx - r * 0.8, leg_bottom)])
    _polygon(surf, [(cx + r * 0.6, leg_top), (cx + r * 0.25, leg_top),
                    (cx + r * 0.8, leg_bottom), (cx + r * 0.05, leg_bottom)])

    base_w = r * 2.0
    base_h = r * 0.35
    _rect_center(surf, cx, leg_bottom + base_h * 0.35, base_w, base_h)

def draw_eye(surf: pygame.Surface, w: int, h: int) -> None:
    """Observation wheel: rim, spokes, gondolas, hub and A-frame base."""
    cx = w * 0.5
    cy = h * 0.53
    outer_r = min(w, h) * 0.33
    inner_r = outer_r * 0.72

    _ellipse(surf, cx, cy, outer_r * 2, outer_r * 2, width=3)

    spokes = 24
    for i in range(spokes):
        angle = 2 * math.pi * i / spokes
        outer = (cx + math.cos(angle) * outer_r, cy + math.sin(angle) * outer_r)
        inner = (cx + math.cos(angle) * inner_r, cy + math.sin(angle) * inner_r)
        _line(surf, inner, outer, 3)

    for i in range(spokes):
        angle = 2 * math.pi * i / spokes
        gx = cx + math.cos(angle) * (outer_r + 8)
        gy = cy + math.sin(angle) * (outer_r + 8)
        _rect_center(surf, gx, gy, outer_r * 0.08, outer_r * 0.11)

    _ellipse(surf, cx, cy, inner_r * 1.3, inner_r * 1.3)

    base_y = cy + outer_r * 1.05
    base_w = outer_r * 1.8
    base_h = outer_r * 0.24
    _rect_center(surf, cx, base_y + base_h * 0.45, base_w, base_h)
    _polygon(surf, [(cx - outer_r * 0.5, base_y), (cx - outer_r * 0.15, base_y),
                    (cx - outer_r * 0.75, base_y + base_h * 1.6)])
    _polygon(surf, [(cx + outer_r * 0.5, base_y), (cx + outer_r * 0.15, base_y),
                    (cx + outer_r * 0.75, base_y + base_h * 1.6)])

def draw_flag(surf: pygame.Surface, w: int, h: int) -> None:
    """Striped flag with a solid canton."""
    flag_h = h * 0.65
    flag_w = flag_h * 1.9
    fx = (w - flag_w) * 0.5
    fy = (h - flag_h) * 0.5

    stripe_count = 13
    stripe_h = flag_h / stripe_count
    for i in range(0, stripe_count, 2):
        _rect_corner(surf, fx, fy + i * stripe_h, flag_w, stripe_h * 0.9)

    _rect_corner(surf, fx, fy, flag_w * 0.4, stripe_h * 7)

def draw_mickey(surf: pygame.Surface, w: int, h: int) -> None:
    cx = w * 0.5
    cy = h * 0.5
    head_r = min(w, h) * 0.22
    ear_r = head_r * 0.55
    ear_dx = head_r * 0.9
    ear_dy = head_r * 0.85

    _ellipse(surf, cx, cy, head_r * 2, head_r * 2)
    _ellipse(surf, cx - ear_dx, cy - ear_dy, ear_r * 2, ear_r * 2)
    _ellipse(surf, cx + ear_dx, cy - ear_dy, ear_r * 2, ear_r * 2)

def draw_universal(surf: pygame.Surface, w: int, h: int) -> None:
    """Globe with latitude bands and meridians on a stepped base."""
    cx = w * 0.5
    cy = h * 0.45
    r = min(w, h) * 0.26

    _ellipse(surf, cx, cy, r * 2, r * 2)

    lat_count = 4
    for i in range(1, lat_count + 1):
        yy = map_range(i, 0, lat_count + 1, cy - r * 0.8, cy + r * 0.8)
        rx = r * math.sqrt(max(0.0, 1 - ((yy - cy) / r) ** 2))
        _ellipse(surf, cx, yy, rx * 2, r * 0.12, width=2)

    long_count = 5
    for i in range(long_count):
        ang = map_range(i, 0, long_count - 1, -math.pi / 3, math.pi / 3)
        _line(surf, (cx + math.cos(ang) * r, cy - math.sin(ang) * r),
              (cx - math.cos(ang) * r, cy + math.sin(ang) * r), 2)

    base_w = r * 2.4
    base_h = r * 0.35
    base_y = cy + r * 1.05
    _rect_center(surf, cx, base_y, base_w, base_h)
    arch_h = r * 0.3
    _rect_center(surf, cx, base_y - arch_h * 0.9, base_w * 0.7, arch_h)

def draw_magic(surf: pygame.Surface, w: int, h: int) -> None:
    """Basketball with motion streaks and a star."""
    cx = w * 0.45
    cy = h * 0.5
    r = min(w, h) * 0.22

    _ellipse(surf, cx, cy, r * 2, r * 2)
    _ellipse(surf, cx, cy, r * 1.5, r * 1.5, width=3)
    _ellipse(surf, cx, cy, r * 1.0, r * 1.0, width=3)

    streaks = 5
    for i in range(streaks):
        dy = map_range(i, 0, streaks - 1, -r * 0.6, r * 0.6)
        pts = _bezier_points(
            (cx - r * 1.2, cy + dy),
            (cx - r * 0.4, cy + dy * 0.2),
            (cx + r * 0.4, cy + dy * 0.6),
            (cx + r * 1.4, cy + dy * 0.4),
        )
        pygame.draw.lines(surf, WHITE, False, [(round(x), round(y)) for x, y in pts], 3)

    star_x = cx + r * 1.15
    star_y = cy - r * 0.6
    star_r = r * 0.25
    points = 5
    star = []
    for i in range(points * 2):
        angle = math.pi / points * i
        rad = star_r if i % 2 == 0 else star_r * 0.45
        star.append((star_x + math.cos(angle) * rad, star_y + math.sin(angle) * rad))
    _polygon(surf, star)

ICON_DRAWERS: Dict[str, Callable[[pygame.Surface, int, int], None]] = {
    'CASTLE': draw_castle,
    'EPCOT': draw_epcot,
    'EYE': draw_eye,
    'FLAG': draw_flag,
    'MICKEY': draw_mickey,
    'UNIVERSAL': draw_universal,
    'MAGIC': draw_magic,
}

def text_size_factor(token: str) -> float:
    """Glyph height as a fraction of the buffer height; longer words shrink."""
    return map_range(len(token), 1, 12, 0.9, 0.45, clamp_output=True)

class PygameShapeRasterizer(ShapeRasterizer):
    """
    Draws icons with pygame.draw and words with pygame.font.
    """
    def __init__(self, font_name=None):
        self.font_name = font_name
        self._fonts: Dict[int, pygame.font.Font] = {}

    def _font(self, size: int) -> pygame.font.Font:
        if not pygame.font.get_init():
            pygame.font.init()
        if size not in self._fonts:
            self._fonts[size] = pygame.font.Font(self.font_name, size)
        return self._fonts[size]

    def _draw_text(self, surf: pygame.Surface, token: str, w: int, h: int) -> None:
        size = max(1, int(h * text_size_factor(token)))
        text_surf = self._font(size).render(token, True, WHITE, BLACK)
        rect = text_surf.get_rect(center=(round(w * 0.5), round(h * 0.65)))
        surf.blit(text_surf, rect)

    def rasterize(self, token: str, width: int, height: int) -> np.ndarray:
        surf = pygame.Surface((width, height))
        surf.fill(BLACK)

        drawer = ICON_DRAWERS.get(token)
        if drawer is not None:
            drawer(surf, width, height)
        elif token:
            self._draw_text(surf, token, width, height)

        mask = surface_to_mask(surf)
        logging.debug(f"Rasterized '{token}' at {width}x{height}: {int(mask.sum())} on-pixels.")
        return mask
