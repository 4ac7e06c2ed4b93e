"""
Tool execution contract.

Every concrete tool derives from ``VisionTool`` and implements ``_run``.
``execute`` wraps it with the error containment boundary and the diagnostic
cache (``last_result`` / ``execution_time``).

Tool instances are not thread-safe: ``execute`` mutates the diagnostic
cache, so a single instance must never be executed concurrently.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type

import numpy as np
from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator, model_validator

from core.constants import ErrorMessages
from core.enums import ToolType
from core.overlay_renderer import OverlayRenderer
from core.roi_handler import ROIHandler
from core.utils.decorators import timer
from core.utils.enum_converter import parse_enum
from core.utils.params_processor import params_to_dict, parse_params
from schemas import ROI, VisionResult

logger = logging.getLogger(__name__)


class ToolParams(BaseModel):
    """
    Base class for tool parameters.

    Assignments are validated, so field validators clamp values both at
    construction and on ``params.field = value``. Numbers outside a field's
    declared ``ge``/``le`` bounds are clamped to the nearest bound instead of
    being rejected.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore", use_enum_values=False)

    @model_validator(mode="before")
    @classmethod
    def accept_enum_spellings(cls, data: Any) -> Any:
        """Accept PascalCase or member-name spellings of enum values."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key, field in cls.model_fields.items():
            annotation = field.annotation
            if key in data and isinstance(annotation, type) and issubclass(annotation, Enum):
                data[key] = parse_enum(data[key], annotation, default=data[key], normalize=True)
        return data

    @field_validator("*", mode="before")
    @classmethod
    def clamp_to_bounds(cls, v: Any, info: ValidationInfo) -> Any:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return v
        field = cls.model_fields.get(info.field_name)
        if field is None:
            return v
        for constraint in field.metadata:
            low = getattr(constraint, "ge", None)
            high = getattr(constraint, "le", None)
            if low is not None and v < low:
                v = low
            if high is not None and v > high:
                v = high
        return v


class VisionTool(ABC):
    """
    Base class of all vision tools.

    Attributes:
        id: Unique instance id (hex uuid)
        name: Display name
        is_enabled: Disabled tools are skipped by the executor
        use_roi: Restrict processing to ``roi``
        roi: Configured region of interest (frame coordinates)
        params: Tool specific parameter model
        last_result: Result of the most recent ``execute`` call
        execution_time: Duration of the most recent ``execute`` call (ms)
        fixture_base_roi: ROI before the first Coordinates relocation
    """

    tool_type: ClassVar[ToolType]
    default_name: ClassVar[str] = "Tool"
    params_class: ClassVar[Type[ToolParams]] = ToolParams
    requires_depth_map: ClassVar[bool] = False

    def __init__(
        self,
        name: Optional[str] = None,
        params: Optional[ToolParams] = None,
        tool_id: Optional[str] = None,
    ):
        self.id = tool_id or uuid.uuid4().hex
        self.name = name or self.default_name
        self.is_enabled = True
        self.use_roi = False
        self.roi = ROI()
        self.params = params if params is not None else self.params_class()
        self.last_result: Optional[VisionResult] = None
        self.execution_time: float = 0.0
        self.fixture_base_roi: Optional[ROI] = None
        # editor canvas position, carried through serialization
        self.canvas_x = 0.0
        self.canvas_y = 0.0
        self.renderer = OverlayRenderer()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r}, name={self.name!r})"

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, image: Optional[np.ndarray]) -> VisionResult:
        """
        Run the tool on one image.

        Never raises: internal failures are returned as
        ``VisionResult(success=False, message=...)``.

        Args:
            image: Full-frame input image

        Returns:
            Fresh VisionResult (also cached in ``last_result``)
        """
        with timer() as t:
            result = self._safe_run(image)
        self.execution_time = t["ms"]
        self.last_result = result
        return result

    def _safe_run(self, image: Optional[np.ndarray]) -> VisionResult:
        if image is None or image.size == 0:
            return VisionResult.failure(ErrorMessages.NO_INPUT_IMAGE)
        try:
            return self._run(image)
        except Exception as e:
            logger.exception(f"Tool '{self.name}' ({self.tool_type.value}) failed: {e}")
            return VisionResult.failure(ErrorMessages.EXECUTION_ERROR.format(error=e))

    @abstractmethod
    def _run(self, image: np.ndarray) -> VisionResult:
        """Tool algorithm; may raise, ``execute`` contains it."""

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def clone(self) -> "VisionTool":
        """
        Copy the configuration into a new, independent tool instance.

        The copy gets a fresh id and no cached result.
        """
        twin = self.__class__(name=self.name, params=self.params.model_copy(deep=True))
        twin.is_enabled = self.is_enabled
        twin.use_roi = self.use_roi
        twin.roi = self.roi.model_copy()
        twin.canvas_x, twin.canvas_y = self.canvas_x, self.canvas_y
        self._copy_state_to(twin)
        return twin

    def _copy_state_to(self, twin: "VisionTool") -> None:
        """Hook for tools with configuration outside ``params``."""

    def get_parameters(self) -> Dict[str, Any]:
        return params_to_dict(self.params)

    def set_parameters(self, values: Mapping[str, Any]) -> List[str]:
        """
        Update parameters from a mapping.

        Invalid values keep their previous setting and are reported.

        Returns:
            List of error messages (empty when everything applied)
        """
        merged = self.get_parameters()
        merged.update(values)
        params, errors = parse_params(self.params_class, merged)

        current = self.get_parameters()
        failed = {e.split(":", 1)[0] for e in errors}
        for key in failed:
            if key in current:
                merged[key] = current[key]
        if failed:
            params, _ = parse_params(self.params_class, merged)

        self.params = params
        return errors

    def reset_fixture(self) -> None:
        """Restore the ROI saved before the first Coordinates relocation."""
        if self.fixture_base_roi is not None:
            self.roi = self.fixture_base_roi.model_copy()
            self.fixture_base_roi = None

    # ------------------------------------------------------------------
    # ROI scoping helpers
    # ------------------------------------------------------------------

    def _work_region(self, image: np.ndarray) -> Tuple[np.ndarray, Tuple[int, int]]:
        """Get (region to process, its offset in the frame)."""
        region = ROIHandler.extract_work_region(image, self.use_roi, self.roi)
        offset = ROIHandler.roi_offset(image, self.use_roi, self.roi)
        return region, offset

    def _active_roi(self, image: np.ndarray) -> Optional[ROI]:
        """Clamped ROI when scoping applies, else None."""
        if not self.use_roi:
            return None
        adjusted = ROIHandler.adjust_roi(image, self.roi)
        return None if adjusted.is_empty else adjusted

    def _composite(self, image: np.ndarray, processed: np.ndarray) -> np.ndarray:
        """
        Full-frame output for a processed work region.

        Without ROI scoping the processed buffer is the output as-is (keeping
        its own channel count); with it, the region is pasted into a copy of
        the frame.
        """
        roi = self._active_roi(image)
        if roi is None:
            return processed.copy() if processed is image else processed
        return ROIHandler.composite_result(image, processed, roi)

    def _overlay_base(self, image: np.ndarray) -> np.ndarray:
        """BGR drawing copy of the frame with the ROI frame drawn."""
        overlay = OverlayRenderer.overlay_base(image)
        roi = self._active_roi(image)
        if roi is not None:
            self.renderer.draw_roi(overlay, roi)
        return overlay


class ImageProcessingTool(VisionTool):
    """
    Tool that transforms pixels inside the ROI.

    Subclasses implement ``_process(region)`` returning the processed region
    and optional data entries; the result is composited into a full frame.
    """

    def _run(self, image: np.ndarray) -> VisionResult:
        region, _ = self._work_region(image)
        processed, data = self._process(region)

        output = self._composite(image, processed)
        return VisionResult(
            success=True,
            message=self._message(data),
            output_image=output,
            data=data,
        )

    def _message(self, data: Dict[str, Any]) -> str:
        return f"{self.name} completed"

    @abstractmethod
    def _process(self, region: np.ndarray) -> Tuple[np.ndarray, Dict[str, Any]]:
        """Process the work region."""
