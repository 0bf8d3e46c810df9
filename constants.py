# constants.py
"""
Application-level constants.

These values are static and do not change between simulation runs.
They are fundamental to the application's framework, such as rendering
properties, the shape sequence, palette tables and swarm bounds, and are
not part of the experimental configuration in config.json.
"""

# Visualization settings
# Set to True to run in borderless fullscreen mode.
# Set to False to run in a resizable window (WINDOW_SIZE).
FULLSCREEN = False
WINDOW_SIZE = (1280, 720)
FPS = 60
# Background brightness on the HSB scale (0-100).
BG_BRIGHTNESS = 7
# Smallest canvas the simulation accepts after a resize.
MIN_CANVAS_SIZE = 64

# --- Visual Appeal Enhancements ---
# Alpha value for the motion blur effect (0-255). Lower is a longer trail.
MOTION_BLUR_ALPHA = 110
# Dot diameters for the two detail modes.
DOT_SIZE_STANDARD = 11
DOT_SIZE_HIGH_DETAIL = 9
# Amplitude of the per-dot brightness flicker (HSB brightness units).
FLICKER_AMPLITUDE = 6
UI_BACKGROUND_ALPHA = 180

# --- Swarm bounds ---
MIN_PARTICLES = 100
MAX_PARTICLES = 2500
DEFAULT_PARTICLES = 250
PARTICLE_STEP = 100

# Discrete rainbow hues (red -> violet) used as particle base hues.
RAINBOW_HUES = [0, 30, 60, 120, 180, 240, 300]

# Words and icons the swarm assembles into, in cycling order.
SHAPES = [
    '407',
    'LOVE',
    'EOLA',
    'DTO',
    'UCF',
    'EPIC',
    'PRIDE',
    'VALOR',
    'VAMOS',
    'ORLANDO',
    'MAGIC',
    'LAKE',
    'SUNRAIL',
    'MICKEY',
    'UNIVERSAL',
    'FLAG',
    'CASTLE',
    'EPCOT',
    'EYE',
]

# Off-screen rasterization resolution, keyed by high-detail flag.
RASTER_RESOLUTIONS = {
    False: (640, 200),
    True: (1280, 400),
}
# Red channel threshold above which a raster pixel counts as "on".
RASTER_THRESHOLD = 128

# Shape token whose targets carry per-letter hue overrides.
MULTI_COLOR_TOKEN = 'PRIDE'
MULTI_COLOR_HUES = [0, 30, 60, 120, 240]

# Fraction of the smaller canvas dimension a shape may occupy, and the
# height/width ratio of the destination box.
SHAPE_BOX_FILL = 0.95
SHAPE_BOX_ASPECT = 0.55

# --- Palettes (HSB swatches) ---
CAMO_SWATCHES = [
    (35, 50, 50),   # Tan
    (90, 60, 45),   # Olive green
    (110, 55, 35),  # Dark green
    (25, 65, 35),   # Brown
]

OC_SWATCHES = [
    (275, 80, 95),  # Purple
    (45, 100, 95),  # Gold
    (0, 0, 100),    # White
]

MAGIC_SWATCHES = [
    (210, 100, 100),  # Bright blue
    (0, 0, 0),        # Black
    (210, 20, 90),    # Silver-ish blue
    (0, 0, 100),      # White
]

# Colour scheme overrides and the hour each one pins the palette to.
COLOR_SCHEMES = ['auto', 'midnight', 'dawn', 'noon', 'dusk', 'camo']
SCHEME_HOURS = {
    'midnight': 0,
    'dawn': 5,
    'noon': 12,
    'dusk': 18,
}

# --- Transition choreography ---
# Shapes that always leave with the same effect.
FORCED_TRANSITIONS = {
    'CASTLE': 'fireworks',
    'MICKEY': 'school',
    'UNIVERSAL': 'schoolWide',
    'EPIC': 'explosion',
    'EOLA': 'swan',
}

FIREWORK_BURSTS = 4
FIREWORK_WINDOW_MS = 900
FIREWORK_RADIUS = 130.0
FIREWORK_IMPULSE = 0.28

SCHOOL_SPACING = 40.0
EXPLOSION_SPEED_RANGE = (4.0, 7.0)
# Particles closer than this to the shape centre get a random kick direction.
EXPLOSION_MIN_RADIUS = 10.0
