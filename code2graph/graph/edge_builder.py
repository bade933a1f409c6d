"""
Edge families of the dependency graph.

Each family is computed independently from the nodes created by the builder;
the builder merges them and removes duplicates.
"""
from typing import Dict, List, Optional, Tuple

from ..models import (
    ApiNode,
    ComponentNode,
    ElementNode,
    GraphEdge,
    GraphNode,
    HandlerNode,
    PackageNode,
    SectionNode,
    StorageNode,
)
from ..types import ComponentRecord, Connection, InformativeElement
from ..utils.logger import app_logger
from .id_generator import IdGenerator
from .render_index import RenderLocationIndex


STORAGE_RELATIONSHIPS = {
    "SELECT": "reads",
    "INSERT": "writes to",
    "UPDATE": "writes to",
    "DELETE": "writes to",
    "UPSERT": "writes to",
}

ComponentKey = Tuple[str, str]
HandlerKey = Tuple[str, str, str]


def is_external_import(source: str) -> bool:
    return not (source.startswith("./") or source.startswith("../"))


def package_name(source: str) -> str:
    """Root package of an import: ``@scope/name`` or the first path segment."""
    parts = source.split("/")
    if parts[0].startswith("@") and len(parts) > 1:
        return f"{parts[0]}/{parts[1]}"
    return parts[0]


def storage_relationship(operation: str) -> str:
    return STORAGE_RELATIONSHIPS.get(operation.upper(), "uses")


def remove_duplicate_edges(edges: List[GraphEdge]) -> List[GraphEdge]:
    """Keep the first edge for each (source, target, relationship)."""
    unique: Dict[Tuple[str, str, str], GraphEdge] = {}
    for edge in edges:
        if edge.key not in unique:
            unique[edge.key] = edge
    return list(unique.values())


class EdgeBuilder:
    """Creates the imports, renders, contains, calls, reads and displays edges."""

    def __init__(self, id_generator: IdGenerator):
        self.id_generator = id_generator
        self.logger = app_logger.bind(component="edge_builder")

    def _edge(self, source: GraphNode, target: GraphNode, relationship: str, properties: Dict) -> GraphEdge:
        return GraphEdge(
            id=self.id_generator.next_edge_id(),
            source=source.id,
            target=target.id,
            relationship=relationship,
            properties=properties,
        )

    def create_import_edges(self, components: List[ComponentRecord],
                            component_nodes: Dict[ComponentKey, ComponentNode],
                            package_nodes: Dict[str, PackageNode]) -> List[GraphEdge]:
        """Component -> package for external imports, component -> component for relative ones."""
        edges: List[GraphEdge] = []
        by_label: Dict[str, List[ComponentNode]] = {}
        for node in component_nodes.values():
            by_label.setdefault(node.label, []).append(node)

        for component in components:
            source = component_nodes.get((component.name, component.file))
            if source is None:
                continue

            for record in component.imports:
                if is_external_import(record.source):
                    name = package_name(record.source)
                    target = package_nodes.get(name)
                    if target is None:
                        continue
                    edges.append(self._edge(source, target, "imports", {
                        "importType": "external",
                        "packageName": name,
                        "importSource": record.source,
                    }))
                    continue

                last_segment = record.source.rstrip("/").split("/")[-1]
                for target in by_label.get(last_segment, []):
                    if target.id == source.id:
                        continue
                    edges.append(self._edge(source, target, "imports", {
                        "importType": "internal",
                        "importSource": record.source,
                    }))

        self.logger.debug(f"Created {len(edges)} import edges")
        return edges

    def create_render_edges(self, render_index: RenderLocationIndex,
                            component_nodes: Dict[ComponentKey, ComponentNode]) -> List[GraphEdge]:
        """Parent component -> rendered component, never a self edge."""
        edges: List[GraphEdge] = []
        by_label: Dict[str, List[ComponentNode]] = {}
        for node in component_nodes.values():
            by_label.setdefault(node.label, []).append(node)

        for name, location in render_index.items():
            candidates = by_label.get(name)
            if not candidates or location.parent_component is None:
                continue
            source = component_nodes.get((location.parent_component, location.file))
            if source is None:
                continue
            target = next((c for c in candidates if c.file == location.file), candidates[0])
            if target.id == source.id:
                continue
            edges.append(self._edge(source, target, "renders", {
                "jsxElement": name,
                "usageFile": location.file,
                "definitionFile": target.file,
                "usageComponent": location.parent_component,
                "line": location.line,
                "column": location.column,
            }))

        self.logger.debug(f"Created {len(edges)} renders edges")
        return edges

    def create_contains_edges(self, component_nodes: Dict[ComponentKey, ComponentNode],
                              element_nodes: List[ElementNode]) -> List[GraphEdge]:
        edges: List[GraphEdge] = []
        for element in element_nodes:
            if element.parent_component is None:
                continue
            source = component_nodes.get((element.parent_component, element.file))
            if source is None:
                continue
            edges.append(self._edge(source, element, "contains", {
                "elementType": element.element_type,
                "elementName": element.element_name,
                "parentComponent": element.parent_component,
            }))
        return edges

    def _call_properties(self, element: InformativeElement, event: str, kind: str, callee: str) -> Dict:
        return {
            "eventType": event,
            "handlerType": kind,
            "triggerMechanism": "user-interaction",
            "elementName": element.name,
            "handlerName": callee,
        }

    def create_handler_call_edges(self, element_bindings: List[Tuple[ElementNode, InformativeElement]],
                                  handler_nodes: Dict[HandlerKey, HandlerNode]) -> List[GraphEdge]:
        """Element node -> handler node, one per (event, callee)."""
        edges: List[GraphEdge] = []
        for element_node, element in element_bindings:
            for binding in element.event_handlers:
                for callee in binding.callees:
                    target = handler_nodes.get((element_node.parent_component, element_node.file, callee))
                    if target is None:
                        continue
                    edges.append(self._edge(
                        element_node, target, "calls",
                        self._call_properties(element, binding.event, binding.kind, callee),
                    ))
        return edges

    def create_direct_call_edges(self, deferred: List[Tuple[ComponentRecord, InformativeElement]],
                                 component_nodes: Dict[ComponentKey, ComponentNode],
                                 handler_nodes: Dict[HandlerKey, HandlerNode]) -> List[GraphEdge]:
        """Component -> handler for handler elements that were not given a node."""
        edges: List[GraphEdge] = []
        for component, element in deferred:
            source = component_nodes.get((component.name, component.file))
            if source is None:
                continue
            for binding in element.event_handlers:
                for callee in binding.callees:
                    target = handler_nodes.get((component.name, component.file, callee))
                    if target is None:
                        self.logger.debug(f"No handler node for {callee} in {component.name}; skipping")
                        continue
                    properties = self._call_properties(element, binding.event, binding.kind, callee)
                    properties["direct"] = True
                    edges.append(self._edge(source, target, "calls", properties))
        return edges

    def create_reads_edges(self, nodes: List[GraphNode]) -> List[GraphEdge]:
        """Broad rule: every API-typed node reads every table or view."""
        apis = [node for node in nodes if node.node_type == "API"]
        storage = [node for node in nodes if node.node_type in ("table", "view")]
        return [
            self._edge(api, entity, "reads", {"rule": "broad"})
            for api in apis
            for entity in storage
        ]

    def create_display_edges(self, sections: List[Tuple[SectionNode, List[ComponentNode]]]) -> List[GraphEdge]:
        """Section -> member component; the first member is the route's root."""
        edges: List[GraphEdge] = []
        for section, members in sections:
            for index, member in enumerate(members):
                edges.append(self._edge(section, member, "displays", {
                    "membership": "root" if index == 0 else "shared",
                    "routePath": section.route_path,
                }))
        return edges

    def create_connection_edges(self, connections: List[Connection], nodes: List[GraphNode]) -> List[GraphEdge]:
        """``calls`` from frontend component to API node, storage edges from API node to tables/views."""
        edges: List[GraphEdge] = []
        components = [node for node in nodes if isinstance(node, ComponentNode)]
        apis = [node for node in nodes if isinstance(node, ApiNode)]
        storage = [node for node in nodes if isinstance(node, StorageNode)]

        for connection in connections:
            frontend: Optional[GraphNode] = next((n for n in components if n.label == connection.frontend), None)
            backend: Optional[GraphNode] = next((n for n in apis if n.label == connection.backend), None)

            if frontend is not None and backend is not None:
                edges.append(self._edge(frontend, backend, "calls", {
                    "connectionType": connection.kind,
                    "confidence": connection.confidence,
                    "path": connection.path,
                    "apiCalls": len(connection.api_calls),
                    "databaseOperations": len(connection.storage_operations),
                }))

            if backend is None:
                continue
            for operation in connection.storage_operations:
                entity = next((n for n in storage if n.label == operation.table), None)
                if entity is None:
                    continue
                edges.append(self._edge(backend, entity, storage_relationship(operation.operation), {
                    "operation": operation.operation,
                    "table": operation.table,
                    "file": operation.file,
                    "line": operation.line,
                }))

        self.logger.debug(f"Created {len(edges)} connection edges")
        return edges
