import pytest
from pathlib import Path
import sys

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from code2graph.errors import ResourceExhaustedError
from code2graph.graph.graph_builder import DependencyGraphBuilder
from code2graph.pipeline import AnalysisPipeline, assemble_components, collect_routes, mark_imported_symbols
from code2graph.types import ComponentKind, FileRole
from conftest import SAMPLE_APP, SAMPLE_INDEX

SAMPLE_TOP_LEVEL_FETCH = """
const loadUsers = () => fetch('/api/users');

function UserList() {
  return <ul />;
}
"""


class TestAssembly:
    """Turning per-file facts into component records."""

    def test_module_record_for_file_without_components(self, extract):
        facts = extract("src/index.tsx", SAMPLE_INDEX)
        records = assemble_components(facts)

        assert [(r.name, r.type) for r in records] == [("index", ComponentKind.MODULE)]
        assert [u.name for u in records[0].jsx_usages] == ["App"]
        assert records[0].jsx_usages[0].component == "index"

    def test_backend_file_without_leftovers_has_no_module_record(self, extract):
        facts = extract("server.js", "const express = require('express');\nexpress().listen(3000);\n")
        assert assemble_components(facts, FileRole.BACKEND) == []

    def test_module_record_does_not_collide_with_component(self, extract):
        facts = extract("src/UserList.tsx", SAMPLE_TOP_LEVEL_FETCH)
        records = assemble_components(facts)

        assert [(r.name, r.type) for r in records] == [
            ("UserList", ComponentKind.FUNCTIONAL),
            ("UserList.module", ComponentKind.MODULE),
        ]
        assert "fetch" not in [e.name for e in records[0].informative_elements]
        assert [e.name for e in records[1].informative_elements] == ["fetch"]
        assert records[1].informative_elements[0].component == "UserList.module"
        assert [r.to_dict()["type"] for r in records] == ["functional", "module"]

    def test_top_level_fetch_stays_on_module_node(self, extract):
        facts = extract("src/UserList.tsx", SAMPLE_TOP_LEVEL_FETCH)
        graph = DependencyGraphBuilder().build_graph(assemble_components(facts))

        components = graph.nodes_of_kind("component")
        assert [n.label for n in components if n.label == "UserList"] == ["UserList"]
        assert len({(n.label, n.file) for n in components}) == len(components)

        labels = {node.id: node.label for node in graph.nodes}
        contains = [(labels[e.source], labels[e.target]) for e in graph.edges_with("contains")]
        assert contains == [("UserList.module", "fetch")]

    def test_collect_routes_deduplicates(self, extract):
        facts = extract("src/App.tsx", SAMPLE_APP)
        routes = collect_routes([facts, facts])
        assert [(r.path, r.component) for r in routes] == [("/", "Dashboard"), ("/users", "UserList")]

    def test_mark_imported_symbols(self, extract):
        helpers = extract("src/helpers.ts", "export function formatName(n) { return n; }\nfunction local() {}\n")
        consumer = extract("src/view.ts", "import { formatName } from './helpers';\nformatName('x');\n")
        mark_imported_symbols([helpers, consumer])

        functions = {f.name: f for f in helpers.functions}
        assert functions["formatName"].is_imported is True
        assert functions["local"].is_imported is False


class TestAnalysisPipeline:
    """Full runs over a small on-disk codebase."""

    def setup_method(self):
        self.pipeline = AnalysisPipeline(max_workers=2)

    def test_run(self, temp_codebase):
        result = self.pipeline.run(str(temp_codebase), repository_url="https://github.com/acme/shop")

        assert result.files_scanned == 7
        assert result.files_parsed == 6
        assert result.parse_failures == []
        assert result.graph.metadata.repository_url == "https://github.com/acme/shop"

        files = {node.file for node in result.graph.nodes}
        assert not any("node_modules" in f or ".test." in f for f in files)

        dead_names = {item.name for item in result.dead_code}
        assert "OrphanPanel" in dead_names
        assert "App" not in dead_names
        assert "UserList" not in dead_names

        assert [(r.path, r.component) for r in result.routes] == [("/", "Dashboard"), ("/users", "UserList")]

    def test_entry_module_renders_app(self, temp_codebase):
        graph = self.pipeline.run(str(temp_codebase)).graph

        index = next(n for n in graph.nodes_of_kind("component") if n.label == "index")
        app = next(n for n in graph.nodes_of_kind("component") if n.label == "App")
        assert index.component_type == "module"
        assert index.live_code_score == 100
        assert any(
            e.source == index.id and e.target == app.id for e in graph.edges_with("renders")
        )

    def test_backend_liveness(self, temp_codebase):
        result = self.pipeline.run(str(temp_codebase))

        apis = {n.label: n for n in result.graph.nodes_of_kind("api")}
        assert apis["GET /api/users"].live_code_score == 100
        assert apis["DELETE /api/legacy"].live_code_score == 0

        tables = {n.label: n for n in result.graph.nodes_of_kind("storage")}
        assert tables["users"].live_code_score == 100
        assert tables["audit_log"].live_code_score == 0

        assert {item.id for item in result.backend_dead_code} == {
            "dead_api_delete_/api/legacy",
            "dead_table_audit_log",
        }
        assert result.statistics.total_apis == 2
        assert result.statistics.unused_apis == 1

    def test_dead_code_lists_each_dead_node_once(self, temp_codebase):
        result = self.pipeline.run(str(temp_codebase))

        ids = [item.id for item in result.dead_code]
        assert len(ids) == len(set(ids))
        assert set(ids) == {n.id for n in result.graph.nodes if n.live_code_score == 0}

    def test_parse_failures_are_isolated(self, temp_codebase):
        (temp_codebase / "src" / "Empty.tsx").write_text("   \n")
        result = self.pipeline.run(str(temp_codebase))

        assert result.files_parsed == 6
        assert len(result.parse_failures) == 1
        assert result.parse_failures[0]["file"] == "src/Empty.tsx"
        assert result.parse_failures[0]["type"] == "syntax"

    def test_runs_are_deterministic(self, temp_codebase):
        first = self.pipeline.run(str(temp_codebase)).graph
        second = AnalysisPipeline(max_workers=4).run(str(temp_codebase)).graph

        assert [(n.id, n.label) for n in first.nodes] == [(n.id, n.label) for n in second.nodes]
        assert [e.key for e in first.edges] == [e.key for e in second.edges]

    def test_file_limit(self, temp_codebase):
        with pytest.raises(ResourceExhaustedError) as exc_info:
            AnalysisPipeline(max_files=2).run(str(temp_codebase))
        assert exc_info.value.to_dict()["type"] == "system"

    def test_result_to_dict(self, temp_codebase):
        data = self.pipeline.run(str(temp_codebase)).to_dict()

        assert data["files_scanned"] == 7
        assert data["statistics"]["totalAPIs"] == 2
        assert isinstance(data["dead_code"], list)
