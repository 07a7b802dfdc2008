# constants.py
"""
Application-level constants.

These values are static and do not change between runs. They are
fundamental to the application's framework, such as window properties,
category bit positions, shader thresholds and the fixed physics constants
of the splat generator. Tunable values (dot ranges, presets, passes) live
in config.json instead.
"""

# Visualization settings
# Set to True to run in borderless fullscreen mode.
# Set to False to run in a fixed-size window (WINDOW_WIDTH x WINDOW_HEIGHT).
FULLSCREEN = False
WINDOW_WIDTH = 1280
WINDOW_HEIGHT = 720
FPS = 60
# The field is evaluated at a reduced resolution and scaled up for display.
DEFAULT_RENDER_SCALE = 0.5
# Paper color the passes are multiplied onto.
BACKGROUND_COLOR = (255, 255, 255)

# --- Dot Categories ---
# Bit positions are stable for the lifetime of the process.
CENTRAL_DOT_MASK = 1 << 0
LARGE_DOT_MASK = 1 << 1
MEDIUM_DOT_MASK = 1 << 2
SMALL_DOT_MASK = 1 << 3
SPLASH_DOT_MASK = 1 << 4
ALL_CATEGORIES_MASK = (
    CENTRAL_DOT_MASK | LARGE_DOT_MASK | MEDIUM_DOT_MASK | SMALL_DOT_MASK | SPLASH_DOT_MASK
)

# --- Dot Buffer ---
DEFAULT_BUFFER_CAPACITY = 512
# Safety limit: a single splat whose upper-bound dot count exceeds this is ignored.
DEFAULT_MAX_DOTS_PER_SPLAT = 500

# --- Splat Physics ---
# Downward in screen space (y grows toward the bottom of the viewport).
GRAVITY = (0.0, 0.3)
VELOCITY_EPSILON = 1e-3
MIN_RADIUS = 1e-6
SPEED_VARIATION_RANGE = (0.5, 1.2)
JITTER_X = 0.2
JITTER_Y = 0.1
FLIGHT_TIME_RANGE = (0.1, 0.5)
MAX_DISTANCE_FACTOR = 1.5
SURFACE_TENSION = 0.3
SURFACE_TENSION_SCALE = 0.2

# --- Field Shader ---
SPATIAL_CULLING_MULTIPLIER = 2.0
ALPHA_THRESHOLD_LOW = 0.7
ALPHA_THRESHOLD_HIGH = 1.0
EDGE_FEATHER_BASE = 0.8
EDGE_FEATHER_VELOCITY = 0.2
NOISE_VELOCITY_OFFSET = 10.0
NOISE_OCTAVES = 4
NOISE_LACUNARITY = 2.0
NOISE_GAIN = 0.5
