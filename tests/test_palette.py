import pytest

from constants import CAMO_SWATCHES, MAGIC_SWATCHES, OC_SWATCHES
from palette import (
    FlagPalette, PaletteContext, RegionPalette, SchemePalette, SwatchPalette,
    TimeOfDayPalette, hue_region, palette_label
)


def ctx(token="LOVE", scheme="auto", hour=10):
    return PaletteContext(shape_token=token, scheme=scheme, hour=hour)


def test_flag_bands():
    flag = FlagPalette()
    assert flag.color(0, ctx()) == (0.0, 100.0, 96.0)
    assert flag.color(60, ctx()) == (0.0, 100.0, 96.0)
    assert flag.color(180, ctx()) == (220.0, 100.0, 92.0)
    assert flag.color(300, ctx()) == (0.0, 0.0, 100.0)


def test_region_palette_thirds():
    ucf = RegionPalette()
    assert ucf.color(0, ctx()) == (0.0, 0.0, 0.0)
    assert ucf.color(120, ctx()) == (45.0, 100.0, 100.0)
    assert ucf.color(300, ctx()) == (0.0, 0.0, 100.0)
    assert hue_region(360, 3) == 2


def test_swatch_palette_slices_hue_circle():
    camo = SwatchPalette(CAMO_SWATCHES)
    assert camo.color(0, ctx()) == CAMO_SWATCHES[0]
    assert camo.color(100, ctx()) == CAMO_SWATCHES[1]
    assert camo.color(300, ctx()) == CAMO_SWATCHES[3]


@pytest.mark.parametrize("hour,expected", [
    (0, (0 + (230 - 0) * 0.7, 100.0, 92.0)),
    (5, (0 + (35 - 0) * 0.75, 70.0, 98.0)),
    (12, (0.0, 100.0, 100.0)),
    (18, (0 + (310 - 0) * 0.6, 90.0, 88.0)),
    (9, (0.0, 90.0, 96.0)),
])
def test_time_of_day_blends(hour, expected):
    h, s, b = TimeOfDayPalette().color(0, ctx(hour=hour))
    assert (h, s, b) == pytest.approx(expected)


def test_scheme_override_pins_the_hour():
    palette = SchemePalette()
    assert palette.color(0, ctx(scheme="noon", hour=3)) == (0.0, 100.0, 100.0)
    assert palette.color(0, ctx(scheme="midnight", hour=12)) == pytest.approx((161.0, 100.0, 92.0))


def test_camo_override():
    palette = SchemePalette()
    assert palette.color(300, ctx(scheme="camo")) == CAMO_SWATCHES[3]


def test_shape_palette_beats_scheme_override():
    palette = SchemePalette()
    assert palette.color(0, ctx(token="FLAG", scheme="camo")) == (0.0, 100.0, 96.0)
    assert palette.color(0, ctx(token="VAMOS", scheme="dusk")) == OC_SWATCHES[0]
    assert palette.color(0, ctx(token="MAGIC")) == MAGIC_SWATCHES[0]
    assert palette.color(0, ctx(token="VALOR")) == CAMO_SWATCHES[0]


def test_palette_labels():
    assert palette_label("PRIDE") == "PRIDE: per-letter rainbow"
    assert palette_label("EOLA") == "Palette: time-of-day rainbow"
