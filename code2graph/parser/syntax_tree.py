"""
Parses TypeScript/JavaScript sources into tree-sitter syntax trees.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from tree_sitter import Language, Parser, Node, Tree

from ..config import settings
from ..errors import ParseFailure
from ..utils.logger import app_logger


def _load_tree_sitter_languages() -> Dict[str, Language]:
    """Load the TSX, TypeScript and JavaScript grammars."""
    import tree_sitter_javascript as tsjs
    import tree_sitter_typescript as tsts

    try:
        languages = {
            "tsx": Language(tsts.language_tsx()),
            "typescript": Language(tsts.language_typescript()),
            "javascript": Language(tsjs.language()),
        }
        app_logger.debug("Loaded tree-sitter grammars: tsx, typescript, javascript")
        return languages
    except Exception as e:
        app_logger.error(f"Failed to load tree-sitter languages: {e}")
        raise RuntimeError(
            "Tree-sitter grammars not available. Please install tree-sitter-typescript and tree-sitter-javascript."
        ) from e


LANGUAGES = _load_tree_sitter_languages()

EXTENSION_GRAMMARS = {
    ".tsx": "tsx",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}


def node_text(node: Optional[Node]) -> str:
    """Decode the source text spanned by a node."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf8", errors="replace")


def node_position(node: Node) -> Tuple[int, int]:
    """1-based line and 0-based column of a node's start."""
    row, column = node.start_point
    return row + 1, column


@dataclass
class ParsedFile:
    """A source file together with its syntax tree."""
    path: str
    source: bytes
    tree: Tree
    grammar: str

    @property
    def root_node(self) -> Node:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return self.tree.root_node.has_error

    @property
    def lines_of_code(self) -> int:
        return len([line for line in self.source.splitlines() if line.strip()])


class SyntaxTreeParser:
    """Selects a grammar by file extension and produces syntax trees."""

    def __init__(self, strict: Optional[bool] = None):
        self.strict = settings.strict_parsing if strict is None else strict
        self.logger = app_logger.bind(component="syntax_tree")

    @staticmethod
    def supports(path: str) -> bool:
        return Path(path).suffix.lower() in EXTENSION_GRAMMARS

    def grammar_for(self, path: str) -> str:
        extension = Path(path).suffix.lower()
        grammar = EXTENSION_GRAMMARS.get(extension)
        if grammar is None:
            raise ParseFailure(f"Unsupported file extension: {extension}", file=path)
        return grammar

    def parse(self, path: str, content: str) -> ParsedFile:
        """Parse source text into a ParsedFile."""
        if content is None or not content.strip():
            raise ParseFailure("File is empty", file=path)

        grammar = self.grammar_for(path)
        source = content.encode("utf8")

        # Parser instances are not shared between threads
        parser = Parser(LANGUAGES[grammar])
        tree = parser.parse(source)

        parsed = ParsedFile(path=path, source=source, tree=tree, grammar=grammar)
        if parsed.has_errors:
            if self.strict:
                raise ParseFailure("Syntax tree contains errors", file=path)
            self.logger.warning(f"Syntax errors in {path}; continuing with partial tree")

        self.logger.debug(f"Parsed {path} with {grammar} grammar")
        return parsed

    def parse_file(self, path: str, display_path: Optional[str] = None) -> ParsedFile:
        """Read and parse a file from disk."""
        try:
            with open(path, "r", encoding="utf-8", errors="ignore") as f:
                content = f.read()
        except OSError as e:
            raise ParseFailure(f"Unable to read file: {e}", file=display_path or path) from e
        return self.parse(display_path or path, content)
