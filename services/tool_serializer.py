"""
Conversion between ``ToolConfig`` records and live tool instances.

Building a pipeline never raises for bad configuration: every problem is
collected as a readable message and the rest of the pipeline is still
built.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from core.constants import ErrorMessages
from core.exceptions import ToolConfigurationError, ToolGraphError
from core.utils.decorators import log_timing
from schemas import ROI, ToolConfig, ToolConnectionConfig
from services.tool_graph import ToolGraph
from vision.tools import VisionTool, create_tool

logger = logging.getLogger(__name__)


@dataclass
class PipelineBuild:
    tools: List[VisionTool] = field(default_factory=list)
    graph: ToolGraph = field(default_factory=ToolGraph)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ToolSerializer:
    """Static helpers; the serializer holds no state."""

    @staticmethod
    def to_config(tool: VisionTool, graph: Optional[ToolGraph] = None, sequence: int = 0) -> ToolConfig:
        connections = []
        if graph is not None:
            connections = [
                ToolConnectionConfig(source_tool_id=c.source_id, connection_type=c.type)
                for c in graph.connections_to(tool.id)
            ]

        return ToolConfig(
            id=tool.id,
            tool_type=tool.tool_type.value,
            name=tool.name,
            sequence=sequence,
            is_enabled=tool.is_enabled,
            x=tool.canvas_x,
            y=tool.canvas_y,
            use_roi=tool.use_roi,
            roi_x=tool.roi.x,
            roi_y=tool.roi.y,
            roi_width=tool.roi.width,
            roi_height=tool.roi.height,
            parameters=tool.get_parameters(),
            connections=connections,
        )

    @staticmethod
    def from_config(config: ToolConfig) -> Tuple[VisionTool, List[str]]:
        """
        Instantiate one tool (connections are not applied).

        Returns:
            Tuple of (tool, configuration errors)

        Raises:
            ToolConfigurationError: Unknown tool type
        """
        tool = create_tool(config.tool_type, name=config.name or None, tool_id=config.id or None)
        errors: List[str] = []

        tool.is_enabled = config.is_enabled
        tool.canvas_x, tool.canvas_y = config.x, config.y
        tool.roi = ROI(x=config.roi_x, y=config.roi_y, width=config.roi_width, height=config.roi_height)
        tool.use_roi = config.use_roi
        if config.use_roi and (config.roi_width <= 0 or config.roi_height <= 0):
            errors.append(
                ErrorMessages.INVALID_ROI.format(name=tool.name, width=config.roi_width, height=config.roi_height)
            )
            tool.use_roi = False

        for message in tool.set_parameters(config.parameters):
            param, _, error = message.partition(":")
            errors.append(ErrorMessages.INVALID_PARAMETER.format(name=tool.name, param=param, error=error.strip()))

        return tool, errors

    @classmethod
    @log_timing
    def build_pipeline(cls, configs: Sequence[ToolConfig]) -> PipelineBuild:
        """
        Build tools and the connection graph from configs.

        Tools are ordered by ``sequence`` (ties keep the input order).
        Connections are applied after all tools exist, so forward
        references are fine.
        """
        build = PipelineBuild()
        ordered = sorted(configs, key=lambda c: c.sequence)
        built: List[Tuple[ToolConfig, VisionTool]] = []
        known_ids = set()

        for config in ordered:
            try:
                tool, errors = cls.from_config(config)
            except ToolConfigurationError as e:
                build.errors.append(f"Tool '{config.name or config.id}': {e.message}")
                continue
            if tool.id in known_ids:
                build.errors.append(f"Tool '{tool.name}': duplicate id {tool.id}, skipped")
                continue

            known_ids.add(tool.id)
            build.errors.extend(errors)
            build.tools.append(tool)
            built.append((config, tool))

        for config, tool in built:
            for connection in config.connections:
                if connection.source_tool_id not in known_ids:
                    build.errors.append(
                        ErrorMessages.UNKNOWN_CONNECTION_SOURCE.format(
                            name=tool.name, source_id=connection.source_tool_id
                        )
                    )
                    continue
                try:
                    build.graph.add_connection(connection.source_tool_id, tool.id, connection.connection_type)
                except ToolGraphError as e:
                    build.errors.append(ErrorMessages.INVALID_CONNECTION.format(name=tool.name, error=e.message))

        if build.errors:
            logger.warning(f"Pipeline built with {len(build.errors)} configuration error(s)")
        logger.info(f"Built pipeline: {len(build.tools)} tool(s), {len(build.graph)} connection(s)")
        return build

    @classmethod
    def export_pipeline(cls, tools: Sequence[VisionTool], graph: ToolGraph) -> List[ToolConfig]:
        return [cls.to_config(tool, graph, sequence=i) for i, tool in enumerate(tools)]
