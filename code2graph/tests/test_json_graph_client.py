import pytest
import json
from pathlib import Path
import sys

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from code2graph.graph.graph_builder import DependencyGraphBuilder
from code2graph.graph.json_graph_client import JsonGraphClient
from code2graph.types import DeadCodeInfo
from conftest import relative_import


def dead_item(name: str, entity_type: str = "component", impact: str = "high", confidence: float = 0.95):
    return DeadCodeInfo(id=f"id_{name}", name=name, type=entity_type, file=f"src/{name}.tsx",
                        confidence=confidence, impact=impact)


class TestJsonGraphClient:
    """Graph documents, dead-code reports and export."""

    def setup_method(self):
        self.client = JsonGraphClient()

    def build_graph(self, make_component):
        builder = DependencyGraphBuilder(interactive_widgets=[])
        return builder.build_graph([
            make_component("App", "src/App.tsx", exported=True, imports=[relative_import("./Header", "Header")]),
            make_component("Header", "src/Header.tsx"),
            make_component("Orphan", "src/Orphan.tsx"),
            make_component("Lonely", "src/Lonely.tsx"),
        ])

    def test_generate_graph_output(self, make_component):
        output = self.client.generate_graph_output(self.build_graph(make_component),
                                                   "https://github.com/acme/shop")

        assert output["version"] == "1.0.0"
        assert output["timestamp"]
        assert output["repositoryUrl"] == "https://github.com/acme/shop"
        assert output["analysisScope"]["excludedTypes"] == ["test", "node_modules"]
        assert output["statistics"]["totalNodes"] == 4
        assert output["statistics"]["deadCodeNodes"] == 2
        assert output["statistics"]["deadCodePercentage"] == 50
        assert "cycles" not in output

        node = output["graph"]["nodes"][0]
        assert node["id"] == "node_1"
        assert node["nodeType"] == "function"
        assert node["nodeCategory"] == "front-end"
        assert node["properties"]["type"] == "functional"
        assert output["graph"]["edges"][0]["relationship"] == "imports"

    def test_graph_output_is_valid(self, make_component):
        output = self.client.generate_graph_output(self.build_graph(make_component), "https://github.com/acme/shop")
        result = self.client.validate_output(output)

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_dead_code_report(self):
        dead_code = [
            dead_item("Orphan"),
            dead_item("helper", "function", impact="medium", confidence=0.8),
            dead_item("flag", "variable", impact="low"),
        ]
        report = self.client.generate_dead_code_report(dead_code, "https://github.com/acme/shop", total_items=12)

        assert report["summary"]["totalDeadCodeItems"] == 3
        assert report["summary"]["deadCodePercentage"] == 25.0
        assert report["summary"]["impactDistribution"] == {"high": 1, "medium": 1, "low": 1}
        assert [item["name"] for item in report["deadCodeItems"]] == ["Orphan", "helper", "flag"]
        assert report["recommendations"] == [
            "Found 3 dead code item(s) in the repository.",
            "Prioritize removing 1 high-impact item(s) first.",
            "Review 1 medium-impact item(s) for potential cleanup.",
            "Consider cleaning up 1 low-impact item(s) when convenient.",
            "1 unused component item(s) detected.",
            "1 unused function item(s) detected.",
            "1 unused variable item(s) detected.",
            "2 item(s) have high confidence and are safe to remove.",
        ]
        assert self.client.validate_output(report).is_valid

    def test_empty_dead_code_report(self):
        report = self.client.generate_dead_code_report([])

        assert report["summary"]["deadCodePercentage"] == 0.0
        assert report["recommendations"] == [
            "No dead code detected. The codebase appears to be well-maintained."
        ]

    def test_validate_output_errors_and_warnings(self):
        data = {
            "version": "1.0.0",
            "timestamp": "",
            "repositoryUrl": "",
            "graph": {
                "nodes": [{"id": "", "label": ""}],
                "edges": [{"id": "edge_1", "source": "node_1"}],
            },
        }
        result = self.client.validate_output(data)

        assert not result.is_valid
        fields = [error["field"] for error in result.errors]
        assert fields == ["timestamp", "statistics", "graph.nodes[0].id", "graph.edges[0].target"]
        assert [warning["field"] for warning in result.warnings] == [
            "repositoryUrl",
            "graph.nodes[0].label",
            "graph.nodes[0].liveCodeScore",
        ]

    def test_document_without_content_is_invalid(self):
        result = self.client.validate_output({"version": "1.0.0", "timestamp": "now", "repositoryUrl": "x"})
        assert [error["field"] for error in result.errors] == ["graph"]

    def test_export_to_file(self, make_component, tmp_path):
        output = self.client.generate_graph_output(self.build_graph(make_component), "https://github.com/acme/shop")
        target = tmp_path / "nested" / "graph.json"

        written = self.client.export_to_file(output, str(target))

        assert written == str(target)
        with open(target, encoding="utf-8") as f:
            loaded = json.load(f)
        assert loaded["statistics"]["totalNodes"] == 4
        assert target.read_text(encoding="utf-8").startswith("{\n  \"version\"")

    def test_export_rejects_invalid_documents(self, tmp_path):
        target = tmp_path / "bad.json"
        with pytest.raises(ValueError):
            self.client.export_to_file({"version": "1.0.0"}, str(target))
        assert not target.exists()
