# palette.py
"""
Colour selection for particles.

A PaletteProvider turns a particle's base hue (plus context: which shape is
active, which colour scheme is forced, what hour it is) into an HSB colour
triple. SchemePalette is the provider the application uses; it dispatches
to per-shape palettes first, then to the forced camouflage scheme, and
otherwise blends toward the time-of-day tint.
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from constants import (
    CAMO_SWATCHES, OC_SWATCHES, MAGIC_SWATCHES, SCHEME_HOURS,
    MULTI_COLOR_TOKEN
)

HSB = Tuple[float, float, float]

@dataclass(frozen=True)
class PaletteContext:
    shape_token: str = ''
    scheme: str = 'auto'
    hour: int = 12

def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t

def hue_region(base_hue: float, regions: int) -> int:
    """Which of `regions` equal slices of the hue circle base_hue falls in."""
    idx = int(math.floor(base_hue / 360.0 * regions))
    return min(max(idx, 0), regions - 1)

class PaletteProvider(ABC):
    @abstractmethod
    def color(self, base_hue: float, context: PaletteContext) -> HSB:
        ...

class SwatchPalette(PaletteProvider):
    """Maps equal slices of the hue circle onto a fixed swatch table."""
    def __init__(self, swatches: Sequence[HSB]):
        self.swatches = list(swatches)

    def color(self, base_hue: float, context: PaletteContext) -> HSB:
        idx = int(math.floor(base_hue / 360.0 * len(self.swatches))) % len(self.swatches)
        h, s, b = self.swatches[idx]
        return (float(h), float(s), float(b))

class FlagPalette(PaletteProvider):
    """Red, blue and white bands."""
    def color(self, base_hue: float, context: PaletteContext) -> HSB:
        if base_hue <= 60:
            return (0.0, 100.0, 96.0)
        if base_hue <= 240:
            return (220.0, 100.0, 92.0)
        return (0.0, 0.0, 100.0)

class RegionPalette(PaletteProvider):
    """Black, gold and white by thirds of the hue circle."""
    COLORS = [(0.0, 0.0, 0.0), (45.0, 100.0, 100.0), (0.0, 0.0, 100.0)]

    def color(self, base_hue: float, context: PaletteContext) -> HSB:
        return self.COLORS[hue_region(base_hue, len(self.COLORS))]

class TimeOfDayPalette(PaletteProvider):
    """
    Full-spectrum rainbow tinted by the hour: cool blues around midnight,
    warm pastels at dawn, saturated at noon, magenta at dusk.
    """
    def color(self, base_hue: float, context: PaletteContext) -> HSB:
        hour = context.hour
        if hour in (0, 1):
            return (_lerp(base_hue, 230, 0.7), 100.0, 92.0)
        if hour in (5, 6):
            return (_lerp(base_hue, 35, 0.75), 70.0, 98.0)
        if hour in (12, 13):
            return (float(base_hue), 100.0, 100.0)
        if hour in (18, 19):
            return (_lerp(base_hue, 310, 0.6), 90.0, 88.0)
        return (float(base_hue), 90.0, 96.0)

class SchemePalette(PaletteProvider):
    """
    The application palette: per-shape palettes win over the camouflage
    override, which wins over the time-of-day blend.
    """
    def __init__(self, shape_palettes: Optional[Dict[str, PaletteProvider]] = None):
        self.camo = SwatchPalette(CAMO_SWATCHES)
        self.time_of_day = TimeOfDayPalette()
        if shape_palettes is None:
            shape_palettes = {
                'FLAG': FlagPalette(),
                'UCF': RegionPalette(),
                'VALOR': self.camo,
                'VAMOS': SwatchPalette(OC_SWATCHES),
                'MAGIC': SwatchPalette(MAGIC_SWATCHES),
            }
        self.shape_palettes = shape_palettes

    def color(self, base_hue: float, context: PaletteContext) -> HSB:
        shape_palette = self.shape_palettes.get(context.shape_token)
        if shape_palette is not None:
            return shape_palette.color(base_hue, context)
        if context.scheme == 'camo':
            return self.camo.color(base_hue, context)
        if context.scheme in SCHEME_HOURS:
            context = PaletteContext(context.shape_token, context.scheme, SCHEME_HOURS[context.scheme])
        return self.time_of_day.color(base_hue, context)

PALETTE_NOTES = {
    'FLAG': 'FLAG: USA colors',
    'UCF': 'UCF: black-gold-white',
    'VAMOS': 'VAMOS: Orlando City colors',
    'MAGIC': 'MAGIC: team colors',
    'VALOR': 'VALOR: Camouflage',
    MULTI_COLOR_TOKEN: f'{MULTI_COLOR_TOKEN}: per-letter rainbow',
}

def palette_label(token: str) -> str:
    return PALETTE_NOTES.get(token, 'Palette: time-of-day rainbow')
