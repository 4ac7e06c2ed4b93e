"""
Utility modules for core functionality.

Modules:
- coordinate_adjuster: ROI offset restoration for contours and points
- decorators: timer context manager, timing decorator
- enum_converter: Enum parsing with tolerant spellings
- params_processor: Parameter model parsing and dumping
"""

from .coordinate_adjuster import CoordinateAdjuster
from .decorators import log_timing, timer
from .enum_converter import normalize_enum_name, parse_enum
from .params_processor import params_to_dict, parse_params

__all__ = [
    "CoordinateAdjuster",
    "timer",
    "log_timing",
    "parse_enum",
    "normalize_enum_name",
    "params_to_dict",
    "parse_params",
]
