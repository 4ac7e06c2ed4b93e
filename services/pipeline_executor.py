"""
Pipeline executor.

Runs the enabled tools of a pipeline on one frame in dependency order and
routes upstream results through the typed connections:

- Result: the target only runs when the source succeeded
- Coordinates: the source's found position relocates the target's ROI
- Image: the source's output image replaces the frame as input
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from core.constants import ErrorMessages, ROIConstants
from core.enums import ConnectionType
from core.exceptions import InvalidImageError
from core.overlay_renderer import OverlayRenderer
from core.utils.decorators import timer
from schemas import ROI, FrameData, VisionResult
from services.tool_graph import ToolGraph
from vision.tools import VisionTool

logger = logging.getLogger(__name__)


@dataclass
class ToolRunResult:
    tool_id: str
    tool_name: str
    result: VisionResult
    skipped: bool = False
    execution_time_ms: float = 0.0


@dataclass
class PipelineRun:
    """Ordered results of one frame"""

    results: List[ToolRunResult] = field(default_factory=list)
    total_time_ms: float = 0.0
    composite_overlay: Optional[np.ndarray] = None

    @property
    def all_success(self) -> bool:
        return all(r.result.success for r in self.results)

    def result_for(self, tool_id: str) -> Optional[ToolRunResult]:
        for r in self.results:
            if r.tool_id == tool_id:
                return r
        return None


def apply_fixture(tool: VisionTool, data: Mapping[str, Any]) -> bool:
    """
    Relocate ``tool.roi`` from an upstream found position.

    The ROI configured before the first relocation is kept in
    ``tool.fixture_base_roi`` and every relocation starts from it, so
    repeated runs do not drift.

    Returns:
        True when the ROI was moved
    """
    base = tool.fixture_base_roi if tool.fixture_base_roi is not None else tool.roi
    width = base.width if base.width > 0 else ROIConstants.FIXTURE_DEFAULT_SIZE
    height = base.height if base.height > 0 else ROIConstants.FIXTURE_DEFAULT_SIZE

    keys = ("CenterX", "CenterY", "TrainedCenterX", "TrainedCenterY")
    if all(k in data for k in keys):
        found_x, found_y = float(data["CenterX"]), float(data["CenterY"])
        trained_x, trained_y = float(data["TrainedCenterX"]), float(data["TrainedCenterY"])
        base_cx, base_cy = base.x + width / 2.0, base.y + height / 2.0

        angle = float(data.get("Angle", 0.0))
        if abs(angle) > ROIConstants.FIXTURE_ANGLE_EPSILON:
            rad = math.radians(angle)
            c, s = math.cos(rad), math.sin(rad)
            rel_x, rel_y = base_cx - trained_x, base_cy - trained_y
            new_cx = found_x + rel_x * c - rel_y * s
            new_cy = found_y + rel_x * s + rel_y * c
        else:
            new_cx = base_cx + found_x - trained_x
            new_cy = base_cy + found_y - trained_y
        roi = ROI(x=int(round(new_cx - width / 2.0)), y=int(round(new_cy - height / 2.0)), width=width, height=height)

    elif isinstance(data.get("BoundingRect"), Mapping):
        roi = ROI.from_dict(data["BoundingRect"])

    elif "CenterX" in data and "CenterY" in data:
        cx, cy = float(data["CenterX"]), float(data["CenterY"])
        roi = ROI(x=int(round(cx - width / 2.0)), y=int(round(cy - height / 2.0)), width=width, height=height)

    else:
        return False

    if tool.fixture_base_roi is None:
        tool.fixture_base_roi = tool.roi.model_copy()
    tool.roi = roi
    tool.use_roi = True
    return True


class PipelineExecutor:
    """
    Executes a tool list over a connection graph.

    The executor holds references, not copies: changes made to ``tools`` or
    ``graph`` by the owner are visible on the next run.
    """

    def __init__(self, tools: List[VisionTool], graph: ToolGraph):
        self.tools = tools
        self.graph = graph

    def _tool(self, tool_id: str) -> Optional[VisionTool]:
        for tool in self.tools:
            if tool.id == tool_id:
                return tool
        return None

    def execute_all(self, frame: FrameData) -> PipelineRun:
        """
        Run every enabled tool on ``frame``.

        A failing tool never aborts the run.

        Raises:
            InvalidImageError: The frame carries no image
            CycleError: The connections of the enabled tools form a cycle
        """
        if not frame.has_image:
            raise InvalidImageError(frame.message or ErrorMessages.NO_INPUT_IMAGE)

        run = PipelineRun(composite_overlay=OverlayRenderer.overlay_base(frame.image))
        with timer() as t:
            order = self.graph.topological_sort(self.tools)
            done: Dict[str, ToolRunResult] = {}
            for tool in order:
                record = self._run_one(tool, frame, done)
                done[tool.id] = record
                run.results.append(record)
                self._merge_overlay(run, record, frame)
        run.total_time_ms = t["ms"]

        failed = sum(1 for r in run.results if not r.result.success)
        logger.info(f"Pipeline run: {len(run.results)} tool(s), {failed} failed, {run.total_time_ms:.1f} ms")
        return run

    def execute_tool(self, tool: VisionTool, frame: FrameData) -> PipelineRun:
        """
        Run one tool after its transitive upstream tools.

        Disabled upstream tools are not run; the requested tool runs even
        when disabled. The last entry of the returned run is the tool's own.
        """
        if not frame.has_image:
            raise InvalidImageError(frame.message or ErrorMessages.NO_INPUT_IMAGE)

        run = PipelineRun(composite_overlay=OverlayRenderer.overlay_base(frame.image))
        with timer() as t:
            done: Dict[str, ToolRunResult] = {}
            for upstream_id in self.graph.upstream_of(tool.id):
                upstream = self._tool(upstream_id)
                if upstream is None or not upstream.is_enabled:
                    continue
                done[upstream_id] = self._run_one(upstream, frame, done)
                run.results.append(done[upstream_id])

            record = self._run_one(tool, frame, done)
            run.results.append(record)
            self._merge_overlay(run, record, frame)
        run.total_time_ms = t["ms"]
        return run

    def _run_one(self, tool: VisionTool, frame: FrameData, done: Dict[str, ToolRunResult]) -> ToolRunResult:
        for connection in self.graph.connections_to(tool.id, ConnectionType.RESULT):
            source = done.get(connection.source_id)
            # disabled or missing sources did not run and do not block
            if source is not None and (source.skipped or not source.result.success):
                return self._skip(tool, source.tool_name)

        for connection in self.graph.connections_to(tool.id, ConnectionType.COORDINATES):
            source = done.get(connection.source_id)
            if source is not None and source.result.success:
                apply_fixture(tool, source.result.data)

        result = tool.execute(self._input_for(tool, frame, done))
        return ToolRunResult(tool.id, tool.name, result, execution_time_ms=tool.execution_time)

    def _input_for(self, tool: VisionTool, frame: FrameData, done: Dict[str, ToolRunResult]) -> np.ndarray:
        for connection in self.graph.connections_to(tool.id, ConnectionType.IMAGE):
            source = done.get(connection.source_id)
            if source is not None and source.result.success and source.result.has_output():
                return source.result.output_image

        if tool.requires_depth_map and frame.point_cloud is not None:
            return frame.point_cloud
        return frame.image

    @staticmethod
    def _skip(tool: VisionTool, upstream_name: str) -> ToolRunResult:
        result = VisionResult.failure(ErrorMessages.UPSTREAM_FAILED.format(name=upstream_name))
        tool.last_result = result
        tool.execution_time = 0.0
        logger.debug(f"Skipping '{tool.name}': upstream '{upstream_name}' failed")
        return ToolRunResult(tool.id, tool.name, result, skipped=True)

    @staticmethod
    def _merge_overlay(run: PipelineRun, record: ToolRunResult, frame: FrameData) -> None:
        overlay = record.result.overlay_image
        if overlay is None or run.composite_overlay is None:
            return
        OverlayRenderer.merge_overlay_graphics(overlay, frame.image, run.composite_overlay)
