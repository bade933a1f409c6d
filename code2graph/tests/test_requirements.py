import pytest
import sys
import importlib
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))


class TestRequirements:
    """Test that all required dependencies are available."""

    def test_python_version(self):
        """Test Python version is supported."""
        assert sys.version_info >= (3, 9), f"Python 3.9+ required, got {sys.version_info}"

    def test_core_dependencies(self):
        """Test that core dependencies can be imported."""
        required_modules = [
            'tree_sitter',
            'tree_sitter_typescript',
            'tree_sitter_javascript',
            'pydantic',
            'pydantic_settings',
            'loguru',
        ]

        missing_modules = []
        for module_name in required_modules:
            try:
                importlib.import_module(module_name)
            except ImportError:
                missing_modules.append(module_name)

        if missing_modules:
            pytest.fail(f"Missing required modules: {missing_modules}")

    def test_grammars_load(self, parser):
        """Every supported grammar produces a parser."""
        for path in ("a.ts", "a.tsx", "a.js"):
            parsed = parser.parse(path, "const x = 1;\n")
            assert parsed.tree is not None

    def test_settings(self):
        from code2graph.config import settings

        assert ".tsx" in settings.supported_extensions_list
        assert "node_modules" in settings.ignored_dirs_set
        assert "Button" in settings.interactive_widgets_set
        assert settings.max_file_size_bytes == settings.max_file_size_mb * 1024 * 1024
