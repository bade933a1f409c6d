import pytest
from pathlib import Path
import sys

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from code2graph.scanner import LocalCodebaseScanner, classify_file_role, is_config_file, is_test_file
from code2graph.types import FileRole
from code2graph.utils.url_utils import extract_repo_name, generate_dead_code_report_path, generate_output_path


class TestLocalCodebaseScanner:
    """Directory walking, exclusion rules and content loading."""

    def test_scan_directory(self, temp_codebase):
        scanner = LocalCodebaseScanner(str(temp_codebase))
        files = scanner.scan_directory()

        assert [f.path for f in files] == [
            "schema.sql",
            "server.js",
            "src/App.tsx",
            "src/components/OrphanPanel.tsx",
            "src/components/UserList.tsx",
            "src/index.tsx",
            "src/pages/Dashboard.tsx",
        ]
        roles = {f.path: f.role for f in files}
        assert roles["schema.sql"] == FileRole.STORAGE
        assert roles["server.js"] == FileRole.BACKEND
        assert roles["src/App.tsx"] == FileRole.FRONTEND
        assert all(f.content is None for f in files)
        assert scanner.excluded_count >= 2

    def test_test_files_can_be_included(self, temp_codebase):
        scanner = LocalCodebaseScanner(str(temp_codebase), exclude_test_files=False)
        paths = [f.path for f in scanner.scan_directory()]

        assert "src/components/UserList.test.tsx" in paths
        assert not any(path.startswith("node_modules") for path in paths)

    def test_load_files_content(self, temp_codebase):
        scanner = LocalCodebaseScanner(str(temp_codebase))
        files = scanner.load_files_content(scanner.scan_directory(), max_workers=2)

        by_path = {f.path: f for f in files}
        assert "export default function App()" in by_path["src/App.tsx"].content
        assert by_path["src/App.tsx"].language == "tsx"
        assert by_path["schema.sql"].language == "sql"

    def test_missing_directory(self, tmp_path):
        scanner = LocalCodebaseScanner(str(tmp_path / "missing"))
        with pytest.raises(FileNotFoundError):
            scanner.scan_directory()


class TestPathClassification:

    @pytest.mark.parametrize("path, role", [
        ("db/schema.sql", FileRole.STORAGE),
        ("server.ts", FileRole.BACKEND),
        ("src/api/client.ts", FileRole.BACKEND),
        ("src/routes.js", FileRole.BACKEND),
        ("backend/users/service.ts", FileRole.BACKEND),
        ("src/models/user.ts", FileRole.STORAGE),
        ("db.js", FileRole.STORAGE),
        ("src/components/Button.tsx", FileRole.FRONTEND),
    ])
    def test_classify_file_role(self, path, role):
        assert classify_file_role(path) == role

    def test_is_test_file(self):
        assert is_test_file("src/App.test.tsx")
        assert is_test_file("src/api.spec.ts")
        assert is_test_file("src/__tests__/helpers.ts")
        assert not is_test_file("src/latest.ts")

    def test_is_config_file(self):
        assert is_config_file("webpack.config.js")
        assert is_config_file("vite.config.ts")
        assert not is_config_file("src/config.ts")


class TestUrlUtils:

    def test_extract_repo_name_from_url(self):
        assert extract_repo_name("https://github.com/owner/repo.git") == "repo"
        assert extract_repo_name("https://github.com/owner/repo") == "repo"

    def test_extract_repo_name_from_local_path(self, tmp_path):
        assert extract_repo_name(str(tmp_path)) == tmp_path.name

    @pytest.mark.parametrize("value", ["", "   ", "https://github.com/owner"])
    def test_invalid_repo_urls(self, value):
        with pytest.raises(ValueError):
            extract_repo_name(value)

    def test_output_paths(self):
        assert generate_output_path("https://github.com/acme/shop") == "./graph-data-files/code2graph_shop.json"
        assert generate_dead_code_report_path("https://github.com/acme/shop") == (
            "./graph-data-files/code2graph_shop-dead-code-report.json"
        )
        assert generate_output_path("https://github.com/acme/shop", output_dir="out/") == "./out/code2graph_shop.json"

    def test_absolute_output_dir_is_kept(self, tmp_path):
        output_dir = str(tmp_path / "out")
        assert generate_output_path("https://github.com/a/b", output_dir=output_dir) == str(
            tmp_path / "out" / "code2graph_b.json"
        )
        assert generate_dead_code_report_path("https://github.com/a/b", output_dir=output_dir).startswith(output_dir)
