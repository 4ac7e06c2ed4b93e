"""
Vision Service - Orchestration facade over the tool pipeline.

Owns the tool list, the connection graph and the executor, and serialises
all access with a reentrant lock so concurrent API requests never run or
mutate the same tool instance at the same time.
"""

import logging
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from core.enums import ConnectionType, ToolType
from core.exceptions import ToolConfigurationError, UnknownToolError
from schemas import FrameData, ToolConfig, ToolTypeInfo
from services.pipeline_executor import PipelineExecutor, PipelineRun
from services.tool_graph import ToolConnection, ToolGraph
from services.tool_serializer import PipelineBuild, ToolSerializer
from vision.tools import TOOL_REGISTRY, FeatureMatchTool, VisionTool, create_tool

logger = logging.getLogger(__name__)


class VisionService:
    """
    Service for pipeline editing and execution.

    Keeps simple run statistics (count, failures, timing) for the
    performance endpoint.
    """

    def __init__(self):
        self.tools: List[VisionTool] = []
        self.graph = ToolGraph()
        self.executor = PipelineExecutor(self.tools, self.graph)

        # Statistics
        self.total_runs = 0
        self.failed_runs = 0
        self.total_time_ms = 0.0
        self.last_time_ms = 0.0
        self.max_time_ms = 0.0

        # Thread safety (RLock allows reentrant locking)
        self.lock = RLock()

    # ------------------------------------------------------------------
    # Pipeline configuration
    # ------------------------------------------------------------------

    def load_pipeline(self, configs: Sequence[ToolConfig]) -> PipelineBuild:
        """Replace the whole pipeline; returns the build with its errors."""
        build = ToolSerializer.build_pipeline(configs)
        with self.lock:
            self.tools[:] = build.tools
            self.graph.clear_connections()
            for c in build.graph.connections:
                self.graph.add_connection(c.source_id, c.target_id, c.type)
        return build

    def export_pipeline(self) -> List[ToolConfig]:
        with self.lock:
            return ToolSerializer.export_pipeline(self.tools, self.graph)

    def get_tool(self, tool_id: str) -> VisionTool:
        """
        Raises:
            UnknownToolError: No tool with that id
        """
        with self.lock:
            for tool in self.tools:
                if tool.id == tool_id:
                    return tool
        raise UnknownToolError(tool_id)

    def add_tool(
        self,
        tool_type: ToolType,
        name: Optional[str] = None,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[VisionTool, List[str]]:
        tool = create_tool(tool_type, name=name)
        errors = tool.set_parameters(parameters) if parameters else []
        with self.lock:
            self.tools.append(tool)
        logger.info(f"Added tool '{tool.name}' ({tool.tool_type.value}) id={tool.id}")
        return tool, errors

    def remove_tool(self, tool_id: str) -> int:
        """Remove a tool and every connection touching it; returns removed connections."""
        with self.lock:
            tool = self.get_tool(tool_id)
            self.tools.remove(tool)
            removed = self.graph.remove_tool(tool_id)
        logger.info(f"Removed tool '{tool.name}' and {removed} connection(s)")
        return removed

    def update_parameters(self, tool_id: str, parameters: Mapping[str, Any]) -> List[str]:
        with self.lock:
            return self.get_tool(tool_id).set_parameters(parameters)

    def connect(self, source_id: str, target_id: str, type: ConnectionType) -> ToolConnection:
        with self.lock:
            self.get_tool(source_id)
            self.get_tool(target_id)
            return self.graph.add_connection(source_id, target_id, type)

    def disconnect(self, source_id: str, target_id: str, type: Optional[ConnectionType] = None) -> int:
        with self.lock:
            return self.graph.remove_connection(source_id, target_id, type)

    def train_pattern(self, tool_id: str, image: np.ndarray, name: Optional[str] = None):
        """
        Train a feature match model from ``image`` (8-bit gray).

        Raises:
            UnknownToolError: No tool with that id
            ToolConfigurationError: Not a feature match tool, or training failed
        """
        with self.lock:
            tool = self.get_tool(tool_id)
            if not isinstance(tool, FeatureMatchTool):
                raise ToolConfigurationError(f"Tool '{tool.name}' is not a feature match tool")
            return tool.train_pattern(image, name)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, frame: FrameData) -> PipelineRun:
        with self.lock:
            run = self.executor.execute_all(frame)
            self._record(run)
        return run

    def execute_tool(self, tool_id: str, frame: FrameData) -> PipelineRun:
        with self.lock:
            tool = self.get_tool(tool_id)
            return self.executor.execute_tool(tool, frame)

    def _record(self, run: PipelineRun) -> None:
        self.total_runs += 1
        if not run.all_success:
            self.failed_runs += 1
        self.total_time_ms += run.total_time_ms
        self.last_time_ms = run.total_time_ms
        self.max_time_ms = max(self.max_time_ms, run.total_time_ms)

    def get_statistics(self) -> Dict[str, Any]:
        with self.lock:
            total = self.total_runs
            return {
                "total": total,
                "failed": self.failed_runs,
                "success_rate": (total - self.failed_runs) / total if total else 0.0,
                "avg_time_ms": self.total_time_ms / total if total else 0.0,
                "last_time_ms": self.last_time_ms,
                "max_time_ms": self.max_time_ms,
                "tool_count": len(self.tools),
                "connection_count": len(self.graph),
            }

    @staticmethod
    def tool_types() -> List[ToolTypeInfo]:
        """Every registered tool kind with its default parameters."""
        return [
            ToolTypeInfo(
                tool_type=tool_type.value,
                default_name=cls.default_name,
                parameters=cls().get_parameters(),
            )
            for tool_type, cls in TOOL_REGISTRY.items()
        ]
