"""
Parameter processing utilities.

Converts between persisted parameter mappings and the typed pydantic
parameter models of each tool.
"""

import logging
from typing import Any, Dict, List, Mapping, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def params_to_dict(params: BaseModel) -> Dict[str, Any]:
    """
    Convert Pydantic params to a JSON-friendly dictionary.

    Enums become their string values and points become ``{"x", "y"}`` dicts.

    Example:
        >>> params_to_dict(BlurParams(blur_type=BlurType.MEDIAN))
        >>> # Returns {"blur_type": "median", "kernel_size": 5, ...}
    """
    return params.model_dump(mode="json")


def parse_params(
    params_class: Type[T], data: Mapping[str, Any], strict_keys: bool = False
) -> Tuple[T, List[str]]:
    """
    Build a parameter model leniently.

    Values that fail validation fall back to their defaults and are reported
    instead of raising, so one bad value does not discard a whole tool.

    Args:
        params_class: Pydantic parameter class
        data: Raw parameter mapping (e.g. from a stored config)
        strict_keys: Report keys that the model does not define

    Returns:
        Tuple of (parameters instance, list of error messages)
    """
    errors: List[str] = []
    known = {k: v for k, v in data.items() if k in params_class.model_fields}

    if strict_keys:
        for key in data:
            if key not in params_class.model_fields:
                errors.append(f"{key}: unknown parameter")

    try:
        return params_class.model_validate(known), errors
    except ValidationError as e:
        bad_fields = set()
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "?"
            bad_fields.add(field)
            errors.append(f"{field}: {err['msg']}")

    remaining = {k: v for k, v in known.items() if k not in bad_fields}
    try:
        return params_class.model_validate(remaining), errors
    except ValidationError as e:
        # Cross-field failure; keep defaults
        errors.extend(f"{'.'.join(map(str, err['loc'])) or '?'}: {err['msg']}" for err in e.errors())
        logger.warning(f"Falling back to default {params_class.__name__}: {e}")
        return params_class(), errors

