"""
Centralized enums for Vision Tool Flow.

Parameter enums use lowercase snake_case values; tool types use the
PascalCase class tags. Both end up in persisted tool configurations.
"""

from enum import Enum


class ToolType(str, Enum):
    """Concrete tool kinds (serialization type tags)"""

    GRAYSCALE = "GrayscaleTool"
    BLUR = "BlurTool"
    THRESHOLD = "ThresholdTool"
    EDGE_DETECTION = "EdgeDetectionTool"
    MORPHOLOGY = "MorphologyTool"
    HISTOGRAM = "HistogramTool"
    HEIGHT_SLICER = "HeightSlicerTool"
    FEATURE_MATCH = "FeatureMatchTool"
    BLOB = "BlobTool"
    CALIPER = "CaliperTool"
    LINE_FIT = "LineFitTool"
    CIRCLE_FIT = "CircleFitTool"


class ConnectionType(str, Enum):
    """Which facet of an upstream result feeds the downstream tool"""

    IMAGE = "image"
    COORDINATES = "coordinates"
    RESULT = "result"


class GraphicType(str, Enum):
    POINT = "point"
    LINE = "line"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ELLIPSE = "ellipse"
    POLYGON = "polygon"
    TEXT = "text"
    CROSSHAIR = "crosshair"


# Image processing
class BlurType(str, Enum):
    AVERAGE = "average"
    GAUSSIAN = "gaussian"
    MEDIAN = "median"
    BILATERAL = "bilateral"


class ThresholdType(str, Enum):
    BINARY = "binary"
    BINARY_INV = "binary_inv"
    TRUNC = "trunc"
    TO_ZERO = "to_zero"
    TO_ZERO_INV = "to_zero_inv"


class AdaptiveMethod(str, Enum):
    MEAN = "mean"
    GAUSSIAN = "gaussian"


class EdgeMethod(str, Enum):
    CANNY = "canny"
    SOBEL = "sobel"
    SCHARR = "scharr"
    LAPLACIAN = "laplacian"


class MorphOperation(str, Enum):
    ERODE = "erode"
    DILATE = "dilate"
    OPEN = "open"
    CLOSE = "close"
    GRADIENT = "gradient"
    TOPHAT = "tophat"
    BLACKHAT = "blackhat"


class KernelShape(str, Enum):
    RECT = "rect"
    ELLIPSE = "ellipse"
    CROSS = "cross"


class HistogramOperation(str, Enum):
    ANALYZE = "analyze"
    EQUALIZE = "equalize"
    CLAHE = "clahe"


# Blob analysis
class BlobSortBy(str, Enum):
    AREA = "area"
    PERIMETER = "perimeter"
    CENTER_X = "center_x"
    CENTER_Y = "center_y"
    CIRCULARITY = "circularity"
    ASPECT_RATIO = "aspect_ratio"


class RetrievalMode(str, Enum):
    EXTERNAL = "external"
    LIST = "list"
    CCOMP = "ccomp"
    TREE = "tree"


class ApproximationMode(str, Enum):
    NONE = "none"
    SIMPLE = "simple"
    TC89_L1 = "tc89_l1"
    TC89_KCOS = "tc89_kcos"


# Measurement
class EdgePolarity(str, Enum):
    DARK_TO_LIGHT = "dark_to_light"
    LIGHT_TO_DARK = "light_to_dark"
    ANY = "any"


class CaliperMode(str, Enum):
    SINGLE_EDGE = "single_edge"
    EDGE_PAIR = "edge_pair"


class ScorerMode(str, Enum):
    MAX_CONTRAST = "max_contrast"
    CLOSEST = "closest"
    BEST_OVERALL = "best_overall"
    CUSTOM = "custom"


class FitMethod(str, Enum):
    LEAST_SQUARES = "least_squares"
    RANSAC = "ransac"
