"""
Constants and configuration values for Vision Tool Flow.
Centralizes all magic numbers and drawing constants.
"""


# ROI Constants
class ROIConstants:
    """Constants for Region of Interest operations."""

    # Size used when a relocated ROI has no configured extent
    FIXTURE_DEFAULT_SIZE = 100
    # Rotation below this (degrees) is treated as pure translation
    FIXTURE_ANGLE_EPSILON = 0.01


# Tool Defaults
class ToolDefaults:
    """Default parameters shared by several tools."""

    THRESHOLD_VALUE = 128
    MAX_PIXEL_VALUE = 255
    KERNEL_SIZE = 5

    # Blob analysis
    BLOB_MIN_AREA = 100.0
    BLOB_MAX_COUNT = 100
    MIN_POINTS_FOR_ELLIPSE = 5

    # Caliper
    CALIPER_SEARCH_WIDTH = 20
    CALIPER_EDGE_THRESHOLD = 30.0
    CALIPER_FILTER_HALF_WIDTH = 2
    CALIPER_EXPECTED_WIDTH = 50.0
    CALIPER_WIDTH_TOLERANCE = 20.0
    CALIPER_MAX_EDGES = 10
    CALIPER_POSITION_SIGMA = 50.0
    SUBPIXEL_MAX_OFFSET = 0.5

    # Line / circle fit
    RANSAC_ITERATIONS = 100
    RANSAC_SEED = 0

    # Histogram plot
    HISTOGRAM_PLOT_WIDTH = 512
    HISTOGRAM_PLOT_HEIGHT = 400

    # Feature match
    FEATURE_MIN_MODEL_POINTS = 10
    FEATURE_MAX_LEVELS = 5


# System Constants
class SystemConstants:
    """Constants for system operations."""

    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# Color Constants (BGR format for OpenCV)
class Colors:
    """Standard colors for drawing operations (BGR format)."""

    GREEN = (0, 255, 0)
    RED = (0, 0, 255)
    BLUE = (255, 0, 0)
    YELLOW = (0, 255, 255)
    CYAN = (255, 255, 0)
    MAGENTA = (255, 0, 255)
    WHITE = (255, 255, 255)
    ORANGE = (0, 165, 255)

    # Semantic colors
    SUCCESS = GREEN
    ERROR = RED
    ROI = YELLOW
    SEARCH_REGION = CYAN

    # Per-blob contour palette
    PALETTE = [
        GREEN,
        BLUE,
        RED,
        CYAN,
        MAGENTA,
        YELLOW,
        (128, 255, 0),
        (255, 128, 0),
    ]


# Drawing Constants
class DrawingConstants:
    """Constants for drawing operations."""

    # Line thickness
    DEFAULT_LINE_THICKNESS = 2

    # Font settings
    SMALL_FONT_SCALE = 0.5

    # Marker sizes
    LARGE_MARKER_SIZE = 10


# Error Messages
class ErrorMessages:
    """Standard error messages."""

    NO_INPUT_IMAGE = "No input image"
    EXECUTION_ERROR = "Execution error: {error}"
    UPSTREAM_FAILED = "Skipped: upstream tool '{name}' failed"
    UNKNOWN_TOOL_TYPE = "Unknown tool type: {tool_type}"
    INVALID_ROI = "Tool '{name}': ROI must have positive width and height (got {width}x{height})"
    INVALID_PARAMETER = "Tool '{name}': invalid parameter {param}: {error}"
    UNKNOWN_CONNECTION_SOURCE = "Tool '{name}': connection source {source_id} not found"
    INVALID_CONNECTION = "Tool '{name}': {error}"
    DEPTH_MAP_REQUIRED = (
        "Height slicing requires a single-channel 32-bit float depth map "
        "(got {channels} channel(s), dtype {dtype})"
    )
    GRAYSCALE_REQUIRED = (
        "Feature matching requires an 8-bit single-channel image; "
        "add a GrayscaleTool upstream"
    )
