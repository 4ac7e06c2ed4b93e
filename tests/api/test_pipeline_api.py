"""
API Integration Tests for Pipeline, Tools and System Endpoints
"""

import cv2
import numpy as np
import pytest

from core.image.converters import to_base64


class TestToolsAPI:
    def test_list_tool_types(self, client):
        response = client.get("/api/tools/types")

        assert response.status_code == 200
        types = {t["tool_type"]: t for t in response.json()}
        assert len(types) == 12
        assert types["BlobTool"]["parameters"]["min_area"] == 100
        assert types["CaliperTool"]["default_name"] == "Caliper"


class TestPipelineAPI:
    @pytest.fixture
    def blob_id(self, client):
        response = client.post("/api/pipeline/tools", json={"tool_type": "BlobTool", "name": "Finder"})
        return response.json()["tool"]["id"]

    def test_add_tool(self, client):
        response = client.post(
            "/api/pipeline/tools",
            json={"tool_type": "BlurTool", "parameters": {"kernel_size": 6}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["errors"] == []
        assert data["tool"]["toolType"] == "BlurTool"
        assert data["tool"]["parameters"]["kernel_size"] == 7

    def test_add_unknown_tool_type(self, client):
        response = client.post("/api/pipeline/tools", json={"tool_type": "LaserTool"})
        assert response.status_code == 422

    def test_get_and_delete_tool(self, client, blob_id):
        assert client.get(f"/api/pipeline/tools/{blob_id}").json()["name"] == "Finder"

        response = client.delete(f"/api/pipeline/tools/{blob_id}")
        assert response.status_code == 200

        response = client.get(f"/api/pipeline/tools/{blob_id}")
        assert response.status_code == 404
        assert response.json()["error"] == "UnknownToolError"

    def test_update_parameters(self, client, blob_id):
        response = client.put(
            f"/api/pipeline/tools/{blob_id}/parameters",
            json={"parameters": {"min_area": 500, "max_blob_count": "many"}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["parameters"]["min_area"] == 500
        assert len(data["errors"]) == 1

    def test_connections(self, client, blob_id):
        gray_id = client.post("/api/pipeline/tools", json={"tool_type": "GrayscaleTool"}).json()["tool"]["id"]

        response = client.post(
            "/api/pipeline/connections",
            json={"source_id": gray_id, "target_id": blob_id, "type": "image"},
        )
        assert response.status_code == 200

        response = client.post(
            "/api/pipeline/connections",
            json={"source_id": blob_id, "target_id": gray_id, "type": "result"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "CycleError"

        response = client.delete(
            "/api/pipeline/connections", params={"source_id": gray_id, "target_id": blob_id}
        )
        assert response.json()["removed"] == 1

    def test_connection_to_unknown_tool(self, client, blob_id):
        response = client.post(
            "/api/pipeline/connections",
            json={"source_id": "ghost", "target_id": blob_id},
        )
        assert response.status_code == 404

    def test_load_and_export(self, client):
        pipeline = {
            "tools": [
                {"id": "g", "toolType": "GrayscaleTool", "sequence": 0},
                {
                    "id": "b",
                    "toolType": "BlobTool",
                    "sequence": 1,
                    "connections": [{"sourceToolId": "g", "connectionType": "image"}],
                },
                {"id": "x", "toolType": "NoSuchTool", "sequence": 2},
            ]
        }

        response = client.post("/api/pipeline/load", json=pipeline)

        assert response.status_code == 200
        data = response.json()
        assert data["tool_count"] == 2
        assert data["connection_count"] == 1
        assert len(data["errors"]) == 1

        exported = client.get("/api/pipeline").json()
        assert [t["id"] for t in exported] == ["g", "b"]
        assert exported[1]["connections"][0]["sourceToolId"] == "g"

    def test_execute(self, client, blob_id, frame_base64):
        response = client.post("/api/pipeline/execute", json={"image_base64": frame_base64})

        assert response.status_code == 200
        data = response.json()
        assert data["success"]
        assert data["composite_overlay_base64"]
        result = data["results"][0]
        assert result["tool_type"] == "BlobTool"
        assert result["data"]["BlobCount"] == 2
        assert result["overlay_base64"]
        assert len(result["graphics"]) == 2

    def test_execute_without_images(self, client, blob_id, frame_base64):
        response = client.post(
            "/api/pipeline/execute", json={"image_base64": frame_base64, "return_images": False}
        )

        data = response.json()
        assert data["composite_overlay_base64"] is None
        assert data["results"][0]["overlay_base64"] is None

    def test_execute_invalid_image(self, client, blob_id):
        response = client.post("/api/pipeline/execute", json={"image_base64": "not-an-image"})
        assert response.status_code == 400

    def test_execute_single_tool(self, client, blob_id, frame_base64):
        client.post("/api/pipeline/tools", json={"tool_type": "BlurTool"})

        response = client.post(f"/api/pipeline/tools/{blob_id}/execute", json={"image_base64": frame_base64})

        assert response.status_code == 200
        results = response.json()["results"]
        assert len(results) == 1
        assert results[0]["tool_id"] == blob_id

    def test_train_and_match(self, client):
        image = np.zeros((200, 200), dtype=np.uint8)
        cv2.rectangle(image, (60, 70), (120, 110), 255, -1)
        image_base64 = to_base64(image, format="PNG")

        tool = client.post(
            "/api/pipeline/tools",
            json={"tool_type": "FeatureMatchTool", "parameters": {"min_scale": 1.0, "max_scale": 1.0}},
        ).json()["tool"]

        response = client.post(f"/api/pipeline/tools/{tool['id']}/train", json={"image_base64": image_base64})
        assert response.status_code == 200
        assert response.json()["point_count"] >= 10

        response = client.post("/api/pipeline/execute", json={"image_base64": image_base64})
        result = response.json()["results"][0]
        assert result["success"]
        assert result["data"]["CenterX"] == pytest.approx(100, abs=2)

    def test_train_wrong_tool(self, client, blob_id, frame_base64):
        response = client.post(f"/api/pipeline/tools/{blob_id}/train", json={"image_base64": frame_base64})
        assert response.status_code == 422


class TestSystemAPI:
    def test_root_and_health(self, client):
        assert client.get("/").json()["name"] == "Vision Tool Flow"
        assert client.get("/health").json()["status"] == "healthy"
        assert client.get("/api/system/health").json()["status"] == "healthy"

    def test_status(self, client):
        data = client.get("/api/system/status").json()

        assert data["status"] == "healthy"
        assert data["tool_count"] == 0
        assert "process_mb" in data["memory_usage"]

    def test_performance_counts_runs(self, client, frame_base64):
        client.post("/api/pipeline/tools", json={"tool_type": "BlobTool"})
        client.post("/api/pipeline/execute", json={"image_base64": frame_base64})

        data = client.get("/api/system/performance").json()

        assert data["total_runs"] == 1
        assert data["success_rate"] == 1.0

    def test_config(self, client):
        data = client.get("/api/system/config").json()
        assert data["pipeline"]["thumbnail_width"] == 640
