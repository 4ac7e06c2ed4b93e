"""
Tests for VisionService
"""

import pytest

from core.enums import ConnectionType, ToolType
from core.exceptions import ToolConfigurationError, UnknownToolError
from schemas import ToolConfig
from services.vision_service import VisionService


class TestVisionService:
    def test_add_and_remove_tool(self, vision_service):
        blob, errors = vision_service.add_tool(ToolType.BLOB, parameters={"min_area": 50})
        gray, _ = vision_service.add_tool(ToolType.GRAYSCALE)
        vision_service.connect(gray.id, blob.id, ConnectionType.IMAGE)

        assert errors == []
        assert blob.params.min_area == 50
        assert vision_service.remove_tool(gray.id) == 1
        assert [t.id for t in vision_service.tools] == [blob.id]

    def test_unknown_tool(self, vision_service):
        with pytest.raises(UnknownToolError):
            vision_service.get_tool("missing")
        with pytest.raises(UnknownToolError):
            vision_service.update_parameters("missing", {})

    def test_load_replaces_pipeline(self, vision_service):
        vision_service.add_tool(ToolType.BLUR)

        build = vision_service.load_pipeline(
            [
                ToolConfig(id="g", tool_type="GrayscaleTool"),
                ToolConfig(id="b", tool_type="BlobTool", sequence=1, connections=[{"sourceToolId": "g"}]),
            ]
        )

        assert build.ok
        assert [t.id for t in vision_service.tools] == ["g", "b"]
        assert len(vision_service.graph) == 1
        assert vision_service.executor.tools is vision_service.tools

    def test_execute_records_statistics(self, vision_service, frame):
        vision_service.add_tool(ToolType.BLOB)

        run = vision_service.execute(frame)
        stats = vision_service.get_statistics()

        assert run.all_success
        assert stats["total"] == 1
        assert stats["failed"] == 0
        assert stats["success_rate"] == 1.0
        assert stats["tool_count"] == 1

    def test_train_pattern_requires_feature_tool(self, vision_service, pattern_image):
        blob, _ = vision_service.add_tool(ToolType.BLOB)
        with pytest.raises(ToolConfigurationError):
            vision_service.train_pattern(blob.id, pattern_image)

        matcher, _ = vision_service.add_tool(ToolType.FEATURE_MATCH)
        model = vision_service.train_pattern(matcher.id, pattern_image, "part")
        assert model.name == "part"

    def test_tool_types(self):
        names = {info.tool_type for info in VisionService.tool_types()}
        assert names == {t.value for t in ToolType}
