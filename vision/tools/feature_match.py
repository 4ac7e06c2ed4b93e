"""
Feature (shape-based) pattern matching tool.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
from pydantic import Field, ValidationInfo, field_validator

from core.constants import Colors, ErrorMessages, ToolDefaults
from core.enums import GraphicType, ToolType
from core.exceptions import ToolConfigurationError
from core.image.converters import channel_count
from core.roi_handler import ROIHandler
from schemas import ROI, GraphicOverlay, Point, VisionResult
from vision.measurement.shape_matching import (
    FeatureMatchModel,
    MatchResult,
    SearchSettings,
    find_best_match,
    train_model,
)

from .base import ToolParams, VisionTool

logger = logging.getLogger(__name__)


class FeatureMatchParams(ToolParams):
    """Feature match parameters"""

    canny_low: float = Field(default=50.0, ge=0, description="Edge threshold (training and search)")
    canny_high: float = Field(default=150.0, ge=0)
    angle_start: float = Field(default=-45.0, description="First search angle (degrees)")
    angle_extent: float = Field(default=90.0, ge=0, le=360, description="Search angle range (degrees)")
    angle_step: float = Field(default=1.0, ge=0.01)
    min_scale: float = Field(default=0.9, ge=0.01)
    max_scale: float = Field(default=1.1, ge=0.01)
    scale_step: float = Field(default=0.05, ge=0.001)
    score_threshold: float = Field(default=0.5, ge=0, le=1)
    num_levels: int = Field(default=3, ge=1, le=ToolDefaults.FEATURE_MAX_LEVELS)
    greediness: float = Field(default=0.8, ge=0, le=1)
    max_model_points: int = Field(default=200, ge=ToolDefaults.FEATURE_MIN_MODEL_POINTS)
    use_contrast_invariant: bool = False
    use_search_region: bool = False
    search_region: ROI = Field(default_factory=ROI)

    @field_validator("max_scale")
    @classmethod
    def max_scale_not_below_min(cls, v: float, info: ValidationInfo) -> float:
        low = info.data.get("min_scale")
        if low is not None and v < low:
            return low
        return v


class FeatureMatchTool(VisionTool):
    """
    Locate trained patterns by gradient orientation.

    The input must be an 8-bit single-channel image. Trained models travel
    with the tool parameters under the ``models`` key.

    Attributes:
        models: Trained patterns, searched in order
    """

    tool_type = ToolType.FEATURE_MATCH
    default_name = "Feature Match"
    params_class = FeatureMatchParams

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.models: List[FeatureMatchModel] = []
        self.last_match: Optional[MatchResult] = None

    def _copy_state_to(self, twin: "FeatureMatchTool") -> None:
        twin.models = [
            FeatureMatchModel(
                name=m.name,
                template=m.template.copy(),
                trained_center=m.trained_center,
                points=m.points.copy(),
                directions=m.directions.copy(),
                enabled=m.enabled,
            )
            for m in self.models
        ]

    # ------------------------------------------------------------------
    # Parameters (models are carried next to the pydantic fields)
    # ------------------------------------------------------------------

    def get_parameters(self) -> Dict[str, Any]:
        values = super().get_parameters()
        values["models"] = [m.to_dict() for m in self.models]
        return values

    def set_parameters(self, values: Mapping[str, Any]) -> List[str]:
        values = dict(values)
        model_data = values.pop("models", None)
        errors = super().set_parameters(values)
        if model_data is None:
            return errors

        p: FeatureMatchParams = self.params
        models = []
        for i, data in enumerate(model_data):
            try:
                models.append(FeatureMatchModel.from_dict(data, p.canny_low, p.canny_high, p.max_model_points))
            except (KeyError, TypeError, ValueError, ToolConfigurationError) as e:
                errors.append(f"models[{i}]: {e}")
        self.models = models
        return errors

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train_pattern(self, image: np.ndarray, name: Optional[str] = None) -> FeatureMatchModel:
        """
        Train a model from the ROI (or the whole image) and append it.

        Args:
            image: 8-bit single-channel frame
            name: Model name (defaults to "Model <n>")

        Raises:
            ToolConfigurationError: Wrong image type or too few edges
        """
        if image is None or channel_count(image) != 1 or image.dtype != np.uint8:
            raise ToolConfigurationError(ErrorMessages.GRAYSCALE_REQUIRED)

        p: FeatureMatchParams = self.params
        template, (ox, oy) = self._work_region(image)
        h, w = template.shape[:2]
        if self.use_roi:
            trained_center = (ox + w / 2.0, oy + h / 2.0)
        else:
            trained_center = (w / 2.0, h / 2.0)

        model = train_model(
            template,
            name=name or f"Model {len(self.models) + 1}",
            trained_center=trained_center,
            canny_low=p.canny_low,
            canny_high=p.canny_high,
            max_points=p.max_model_points,
        )
        self.models.append(model)
        logger.info(f"Tool '{self.name}': trained '{model.name}' ({model.point_count} points)")
        return model

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def _search_settings(self) -> SearchSettings:
        p: FeatureMatchParams = self.params
        return SearchSettings(
            angle_start=p.angle_start,
            angle_extent=p.angle_extent,
            angle_step=p.angle_step,
            min_scale=p.min_scale,
            max_scale=p.max_scale,
            scale_step=p.scale_step,
            num_levels=p.num_levels,
            greediness=p.greediness,
            contrast_invariant=p.use_contrast_invariant,
            min_magnitude=p.canny_low,
        )

    def _run(self, image: np.ndarray) -> VisionResult:
        p: FeatureMatchParams = self.params
        self.last_match = None

        if channel_count(image) != 1 or image.dtype != np.uint8:
            return VisionResult.failure(ErrorMessages.GRAYSCALE_REQUIRED)

        models = [m for m in self.models if m.enabled]
        if not models:
            return VisionResult.failure("No trained pattern")

        search, (ox, oy) = image, (0, 0)
        region = None
        if p.use_search_region:
            region = ROIHandler.adjust_roi(image, p.search_region)
            if not region.is_empty:
                search = image[region.y : region.y2, region.x : region.x2]
                ox, oy = region.x, region.y
            else:
                region = None

        match = find_best_match(search, models, self._search_settings())
        if match is not None:
            match.x += ox
            match.y += oy

        if match is None or match.score < p.score_threshold:
            best = match.score if match is not None else 0.0
            return VisionResult(
                success=False,
                message=f"Pattern not found (best score {best:.3f} < {p.score_threshold:.3f})",
                overlay_image=self._draw(image, None, region),
                data={"Score": best},
            )

        self.last_match = match
        model = match.model
        return VisionResult(
            success=True,
            message=f"Found '{model.name}' (score {match.score:.3f})",
            output_image=image,
            overlay_image=self._draw(image, match, region),
            graphics=[
                GraphicOverlay(
                    type=GraphicType.RECTANGLE,
                    position=Point(
                        x=match.x - model.template.shape[1] * match.scale / 2.0,
                        y=match.y - model.template.shape[0] * match.scale / 2.0,
                    ),
                    width=model.template.shape[1] * match.scale,
                    height=model.template.shape[0] * match.scale,
                    angle=match.angle,
                ),
                GraphicOverlay(type=GraphicType.CROSSHAIR, position=Point(x=match.x, y=match.y)),
            ],
            data={
                "Score": match.score,
                "CenterX": match.x,
                "CenterY": match.y,
                "Angle": match.angle,
                "Scale": match.scale,
                "MatchedModel": model.name,
                "TrainedCenterX": model.trained_center[0],
                "TrainedCenterY": model.trained_center[1],
            },
        )

    def _draw(self, image: np.ndarray, match: Optional[MatchResult], region: Optional[ROI]) -> np.ndarray:
        overlay = self._overlay_base(image)
        if region is not None:
            self.renderer.draw_roi(overlay, region, Colors.SEARCH_REGION)
        if match is None:
            return overlay

        h, w = match.model.template.shape[:2]
        size = (w * match.scale, h * match.scale)
        self.renderer.draw_rotated_rect(overlay, (match.x, match.y), size, match.angle, Colors.GREEN)
        self.renderer.draw_cross_marker(overlay, match.x, match.y, Colors.RED)
        self.renderer.draw_label(overlay, f"{match.model.name} {match.score:.2f}", match.x + 10, match.y - 10)
        return overlay
