"""
Syntax tree parsing and semantic fact extraction.
"""

from .syntax_tree import SyntaxTreeParser, ParsedFile, node_text, node_position
from .fact_extractor import SyntaxFactExtractor, classify_section
from .component_detection import contains_jsx, is_component_name, is_react_file

__all__ = [
    'SyntaxTreeParser',
    'ParsedFile',
    'SyntaxFactExtractor',
    'classify_section',
    'contains_jsx',
    'is_component_name',
    'is_react_file',
    'node_text',
    'node_position',
]
