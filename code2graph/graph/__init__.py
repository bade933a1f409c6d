"""
Dependency graph construction, cycle detection and JSON output.
"""

from .id_generator import IdGenerator
from .render_index import RenderLocationIndex
from .edge_builder import EdgeBuilder
from .cycle_detector import CycleDetector
from .graph_builder import DependencyGraphBuilder, BackendGraphResult
from .json_graph_client import JsonGraphClient

__all__ = [
    'IdGenerator',
    'RenderLocationIndex',
    'EdgeBuilder',
    'CycleDetector',
    'DependencyGraphBuilder',
    'BackendGraphResult',
    'JsonGraphClient',
]
