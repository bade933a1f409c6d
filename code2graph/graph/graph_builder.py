"""
Builds the typed dependency graph from extracted component facts.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..analysis.api_endpoint_analyzer import ApiEndpointAnalyzer
from ..analysis.connection_mapper import ConnectionMapper
from ..analysis.endpoint_normalizer import EndpointNormalizer
from ..analysis.storage_analyzer import StorageAnalyzer
from ..analysis.usage_tracker import UsageTracker, dead_code_confidence, dead_code_impact
from ..config import settings
from ..errors import AnalysisError, GraphConstructionError, InputValidationError
from ..models import (
    ComponentNode,
    DependencyGraph,
    ElementNode,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    GraphStatistics,
    HandlerNode,
    PackageNode,
    SectionNode,
)
from ..types import (
    ApiCall,
    BackendRouteAnalysis,
    ComponentRecord,
    ConnectionMappingResult,
    DeadCodeInfo,
    InformativeElement,
    RenderLocation,
    RouteInfo,
    SourceFile,
    StorageAnalysis,
)
from ..utils.logger import app_logger
from .cycle_detector import CycleDetector
from .edge_builder import EdgeBuilder, is_external_import, package_name, remove_duplicate_edges
from .id_generator import IdGenerator
from .render_index import RenderLocationIndex


PASSIVE_TAGS = {
    "h1", "h2", "h3", "h4", "h5", "h6", "p", "span", "label", "div", "section", "article",
    "header", "footer", "nav", "ul", "ol", "li", "strong", "em", "i", "b", "a",
}

API_LIBRARY_MARKERS = ["axios", "fetch", "http", "api", "request"]

LIVENESS_RELATIONSHIPS = {"renders", "contains", "calls", "imports"}
STORAGE_RELATIONSHIPS = {"reads", "writes to", "uses"}


@dataclass
class BuildState:
    """Nodes created so far, indexed for the edge passes."""
    nodes: List[GraphNode] = field(default_factory=list)
    component_nodes: Dict[Tuple[str, str], ComponentNode] = field(default_factory=dict)
    element_nodes: List[ElementNode] = field(default_factory=list)
    element_bindings: List[Tuple[ElementNode, InformativeElement]] = field(default_factory=list)
    handler_nodes: Dict[Tuple[str, str, str], HandlerNode] = field(default_factory=dict)
    package_nodes: Dict[str, PackageNode] = field(default_factory=dict)
    deferred_handlers: List[Tuple[ComponentRecord, InformativeElement]] = field(default_factory=list)
    sections: List[Tuple[SectionNode, List[ComponentNode]]] = field(default_factory=list)
    render_index: RenderLocationIndex = field(default_factory=RenderLocationIndex)
    validation_issues: List[Dict] = field(default_factory=list)


@dataclass
class BackendGraphResult:
    """Graph plus everything learned while analysing the backend."""
    graph: DependencyGraph
    dead_code: List[DeadCodeInfo]
    api_calls: List[ApiCall]
    backend_analysis: BackendRouteAnalysis
    storage_analysis: StorageAnalysis
    connections: ConnectionMappingResult
    recommendations: List[str]


class DependencyGraphBuilder:
    """Creates component, element, handler, package and section nodes and every edge family."""

    def __init__(self, interactive_widgets: Optional[Iterable[str]] = None,
                 usage_tracker: Optional[UsageTracker] = None,
                 normalizer: Optional[EndpointNormalizer] = None):
        self.interactive_widgets: Set[str] = (
            set(interactive_widgets) if interactive_widgets is not None else settings.interactive_widgets_set
        )
        self.id_generator = IdGenerator()
        self.edge_builder = EdgeBuilder(self.id_generator)
        self.usage_tracker = usage_tracker or UsageTracker()
        self.normalizer = normalizer or EndpointNormalizer()
        self.cycle_detector = CycleDetector()
        self.api_endpoint_analyzer = ApiEndpointAnalyzer(normalizer=self.normalizer)
        self.storage_analyzer = StorageAnalyzer()
        self.connection_mapper = ConnectionMapper(normalizer=self.normalizer)
        self.logger = app_logger.bind(component="graph_builder")

    # ------------------------------------------------------------------
    # Component graph
    # ------------------------------------------------------------------

    def build_graph(self, components: List[ComponentRecord],
                    routes: Optional[List[RouteInfo]] = None) -> DependencyGraph:
        """Build the frontend graph for the given components and optional routes."""
        self.logger.info(f"Starting dependency graph construction for {len(components)} components")
        try:
            self.id_generator.reset()
            state = self._create_nodes(components, routes or [])
            edges = self._create_edges(components, state)
            self._apply_liveness(components, state.nodes, edges)

            graph = DependencyGraph(
                nodes=state.nodes,
                edges=edges,
                metadata=self._create_metadata(components, state.nodes, edges),
                validation_issues=state.validation_issues,
            )
            graph.cycles = self.cycle_detector.detect(graph)
        except GraphConstructionError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to build dependency graph: {e}")
            raise GraphConstructionError.from_exception("Failed to build dependency graph", e) from e

        stats = graph.metadata.statistics
        self.logger.info(
            f"Dependency graph construction completed: {stats.total_nodes} nodes, {stats.total_edges} edges, "
            f"{stats.dead_code_nodes} dead, {stats.live_code_nodes} live"
        )
        return graph

    def _create_nodes(self, components: List[ComponentRecord], routes: List[RouteInfo]) -> BuildState:
        state = BuildState()

        for component in components:
            node = self._component_node(component)
            state.nodes.append(node)
            state.component_nodes.setdefault((component.name, component.file), node)

            for element in component.informative_elements:
                self._add_element(component, element, state)

            for usage in component.jsx_usages:
                state.render_index.add(usage.name, RenderLocation(
                    file=usage.file or component.file,
                    line=usage.line,
                    column=usage.column,
                    parent_component=usage.component or component.name,
                ))

            self._add_handler_nodes(component, state)

        self._add_package_nodes(components, state)

        for node in state.component_nodes.values():
            node.render_locations = state.render_index.get(node.label)

        for route in routes:
            self._add_section(route, components, state)

        self.logger.debug(
            f"Created {len(state.nodes)} nodes; {len(state.render_index)} render locations, "
            f"{len(state.deferred_handlers)} handler elements without a node"
        )
        return state

    def _component_node(self, component: ComponentRecord) -> ComponentNode:
        state_names = [
            element.name for element in component.informative_elements
            if element.kind == "state-management"
        ]
        return ComponentNode(
            id=self.id_generator.next_node_id(),
            label=component.name,
            file=component.file,
            line=component.line or None,
            column=component.column if component.line else None,
            component_type=component.type.value,
            props=list(component.props),
            state=state_names,
            hooks=list(component.hooks),
        )

    def _add_element(self, component: ComponentRecord, element: InformativeElement, state: BuildState):
        """Apply the node-worthiness rules to one element."""
        name = element.name
        is_data = element.kind in ("data-source", "state-management")

        if not is_data and name[:1].isupper() and name not in self.interactive_widgets:
            state.render_index.add(name, RenderLocation(
                file=element.file or component.file,
                line=element.line,
                column=element.column,
                parent_component=element.component or component.name,
            ))
            return

        if not is_data and name in PASSIVE_TAGS and not element.has_event_handlers:
            return

        if element.has_event_handlers and not is_data:
            if not element.has_semantic_identifier:
                state.deferred_handlers.append((component, element))
                return
            label = element.semantic_identifier
        else:
            label = name

        node = ElementNode(
            id=self.id_generator.next_node_id(),
            label=label,
            node_type="API" if element.kind == "data-source" else "function",
            node_category="middleware" if element.kind == "data-source" else "front-end",
            file=component.file,
            line=element.line or None,
            column=element.column if element.line else None,
            element_type=element.kind,
            element_name=name,
            props=dict(element.props),
            event_handlers=[binding.to_dict() for binding in element.event_handlers],
            data_bindings=list(element.data_bindings),
            parent_component=component.name,
        )
        state.nodes.append(node)
        state.element_nodes.append(node)
        if element.has_event_handlers:
            state.element_bindings.append((node, element))

    def _add_handler_nodes(self, component: ComponentRecord, state: BuildState):
        """One node per distinct callee name within the component."""
        for element in component.informative_elements:
            for binding in element.event_handlers:
                for callee in binding.callees:
                    key = (component.name, component.file, callee)
                    if not callee or key in state.handler_nodes:
                        continue
                    node = HandlerNode(
                        id=self.id_generator.next_node_id(),
                        label=callee,
                        file=component.file,
                        parent_component=component.name,
                        event_type=binding.event,
                        handler_type=binding.kind,
                    )
                    state.handler_nodes[key] = node
                    state.nodes.append(node)

    def _add_package_nodes(self, components: List[ComponentRecord], state: BuildState):
        for component in components:
            for record in component.imports:
                if not is_external_import(record.source):
                    continue
                name = package_name(record.source)
                if not name or name in state.package_nodes:
                    continue
                node = PackageNode(
                    id=self.id_generator.next_node_id(),
                    label=name,
                    live_code_score=100,
                    package_name=name,
                    is_infrastructure=True,
                )
                state.package_nodes[name] = node
                state.nodes.append(node)

    def _add_section(self, route: RouteInfo, components: List[ComponentRecord], state: BuildState):
        root = next((c for c in components if c.name == route.component), None)
        if root is None:
            issue = InputValidationError(
                f"Route '{route.path}' references unknown component '{route.component}'",
                file=route.file,
            )
            self.logger.warning(issue.message)
            state.validation_issues.append(issue.to_dict())
            return

        member_names = self.find_section_components(root, components)
        members: List[ComponentNode] = []
        for name in member_names:
            node = next((n for n in state.component_nodes.values() if n.label == name), None)
            if node is not None and node not in members:
                members.append(node)

        section = SectionNode(
            id=self.id_generator.next_node_id(),
            label=route.label or route.path,
            file=route.file or root.file,
            line=route.line,
            column=route.column,
            live_code_score=100,
            route_path=route.path,
            route_component=route.component,
            section_type=route.section_type,
            metadata=dict(route.metadata),
        )
        state.nodes.append(section)
        state.sections.append((section, members))

    def find_section_components(self, root: ComponentRecord, components: List[ComponentRecord]) -> List[str]:
        """Root component first, then everything reachable through relative imports."""
        by_name: Dict[str, List[ComponentRecord]] = {}
        for component in components:
            by_name.setdefault(component.name, []).append(component)

        ordered: List[str] = []
        visited: Set[str] = set()
        stack = [root.name]
        while stack:
            name = stack.pop()
            if name in visited:
                continue
            visited.add(name)
            ordered.append(name)

            imported: List[str] = []
            for record in by_name.get(name, []):
                for import_record in record.imports:
                    if is_external_import(import_record.source):
                        continue
                    segment = import_record.source.rstrip("/").split("/")[-1]
                    for candidate in [segment] + import_record.imported_names():
                        if candidate in by_name and candidate not in visited and candidate not in imported:
                            imported.append(candidate)
            stack.extend(reversed(imported))

        return ordered

    def _create_edges(self, components: List[ComponentRecord], state: BuildState) -> List[GraphEdge]:
        edges: List[GraphEdge] = []
        edges.extend(self.edge_builder.create_import_edges(components, state.component_nodes, state.package_nodes))
        edges.extend(self.edge_builder.create_render_edges(state.render_index, state.component_nodes))
        edges.extend(self.edge_builder.create_contains_edges(state.component_nodes, state.element_nodes))
        edges.extend(self.edge_builder.create_handler_call_edges(state.element_bindings, state.handler_nodes))
        edges.extend(self.edge_builder.create_direct_call_edges(
            state.deferred_handlers, state.component_nodes, state.handler_nodes
        ))
        edges.extend(self.edge_builder.create_reads_edges(state.nodes))
        edges.extend(self.edge_builder.create_display_edges(state.sections))

        unique = remove_duplicate_edges(edges)
        self.logger.debug(f"Created {len(edges)} edges, {len(unique)} after de-duplication")
        return unique

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    def _apply_liveness(self, components: List[ComponentRecord], nodes: List[GraphNode],
                        edges: List[GraphEdge], base_scores: Optional[Dict[str, int]] = None):
        """Score every node 0 or 100 from usage facts and incoming edges."""
        usage_infos = self.usage_tracker.track_component_usage(components)
        used_components = {(info.name, info.file) for info in usage_infos if info.is_used}

        referenced: Set[str] = set()
        renders_out: Set[str] = set()
        for edge in edges:
            if edge.relationship in LIVENESS_RELATIONSHIPS:
                referenced.add(edge.target)
            if edge.relationship == "renders":
                renders_out.add(edge.source)

        base_scores = base_scores or {}
        for node in nodes:
            if node.kind == "component":
                live = (node.label, node.file) in used_components or node.id in referenced
                # A module record that mounts components is an entry point
                if node.component_type == "module" and node.id in renders_out:
                    live = True
            elif node.kind in ("package", "section", "handler", "middleware"):
                live = True
            elif node.kind in ("api", "storage"):
                live = base_scores.get(node.id, node.live_code_score) > 0 or node.id in referenced
            else:
                live = node.id in referenced
            node.live_code_score = 100 if live else 0

    def _create_metadata(self, components: List[ComponentRecord], nodes: List[GraphNode],
                         edges: List[GraphEdge]) -> GraphMetadata:
        lines_by_file: Dict[str, int] = {}
        for component in components:
            lines_by_file[component.file] = max(lines_by_file.get(component.file, 0), component.lines_of_code)

        return GraphMetadata(
            timestamp=datetime.now(timezone.utc).isoformat(),
            statistics=GraphStatistics(
                lines_of_code=sum(lines_by_file.values()),
                total_nodes=len(nodes),
                total_edges=len(edges),
                dead_code_nodes=len([n for n in nodes if n.live_code_score == 0]),
                live_code_nodes=len([n for n in nodes if n.live_code_score == 100]),
            ),
        )

    # ------------------------------------------------------------------
    # API and backend
    # ------------------------------------------------------------------

    def trace_api_calls(self, components: List[ComponentRecord]) -> List[ApiCall]:
        """API calls from data-source elements and from imports of HTTP client libraries."""
        calls: List[ApiCall] = []
        seen_imports: Set[Tuple[str, str]] = set()

        try:
            for component in components:
                for element in component.informative_elements:
                    if element.kind != "data-source":
                        continue
                    endpoint = element.props.get("endpoint") or "/api/unknown"
                    calls.append(ApiCall(
                        name=element.name,
                        endpoint=endpoint,
                        method=(element.props.get("method") or "GET").upper(),
                        file=component.file,
                        line=element.line,
                        column=element.column,
                        component=element.component or component.name,
                        normalized_endpoint=self.normalizer.normalize(endpoint),
                    ))

                for record in component.imports:
                    if not any(marker in record.source for marker in API_LIBRARY_MARKERS):
                        continue
                    key = (component.file, record.source)
                    if key in seen_imports:
                        continue
                    seen_imports.add(key)
                    calls.append(ApiCall(
                        name=record.source,
                        endpoint="/api/external",
                        method="GET",
                        file=component.file,
                        line=record.line,
                        column=record.column,
                        normalized_endpoint="/api/external",
                    ))
        except Exception as e:
            self.logger.error(f"Failed to trace API calls: {e}")
            raise AnalysisError.from_exception("Failed to trace API calls", e) from e

        self.logger.info(
            f"API call tracing completed: {len(calls)} calls, {len({c.endpoint for c in calls})} unique endpoints"
        )
        return calls

    def analyze_api_and_backend(self, components: List[ComponentRecord], files: List[SourceFile],
                                routes: Optional[List[RouteInfo]] = None) -> BackendGraphResult:
        """Full graph: components plus API endpoints, middleware and storage entities."""
        self.logger.info(f"Starting API and backend analysis: {len(components)} components, {len(files)} files")
        try:
            self.id_generator.reset()
            state = self._create_nodes(components, routes or [])

            backend = self.api_endpoint_analyzer.analyze_backend_files(files)
            storage = self.storage_analyzer.analyze_storage_operations(files)
            api_calls = self.trace_api_calls(components)

            mapping = self.connection_mapper.map_connections(
                components, backend.endpoints, api_calls, storage.operations
            )
            backend = self.api_endpoint_analyzer.identify_used_unused_endpoints(backend, api_calls)
            storage = self.storage_analyzer.identify_used_unused_entities(storage)
            dead_code = self.detect_backend_dead_code(backend, storage)
            recommendations = self.connection_mapper.analyze_connection_quality(mapping)

            backend_nodes = self.api_endpoint_analyzer.map_routes_to_nodes(backend, self.id_generator)
            storage_nodes = self.storage_analyzer.map_entities_to_nodes(storage, self.id_generator)
            state.nodes.extend(backend_nodes)
            state.nodes.extend(storage_nodes)
            base_scores = {node.id: node.live_code_score for node in backend_nodes + storage_nodes}

            edges = self._create_edges_without_broad_reads(components, state)
            connection_edges = self.edge_builder.create_connection_edges(mapping.connections, state.nodes)
            edges.extend(connection_edges)
            if not any(edge.relationship in STORAGE_RELATIONSHIPS for edge in connection_edges):
                edges.extend(self.edge_builder.create_reads_edges(state.nodes))
            edges = remove_duplicate_edges(edges)

            self._apply_liveness(components, state.nodes, edges, base_scores)

            graph = DependencyGraph(
                nodes=state.nodes,
                edges=edges,
                metadata=self._create_metadata(components, state.nodes, edges),
                validation_issues=state.validation_issues,
            )
            graph.cycles = self.cycle_detector.detect(graph)
        except GraphConstructionError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to analyze API and backend: {e}")
            raise GraphConstructionError.from_exception("Failed to analyze API and backend", e) from e

        stats = graph.metadata.statistics
        self.logger.info(
            f"API and backend analysis completed: {stats.total_nodes} nodes, {stats.total_edges} edges, "
            f"{len(backend.endpoints)} endpoints, {len(storage.entities)} storage entities, "
            f"{len(mapping.connections)} connections"
        )
        return BackendGraphResult(
            graph=graph,
            dead_code=dead_code,
            api_calls=api_calls,
            backend_analysis=backend,
            storage_analysis=storage,
            connections=mapping,
            recommendations=recommendations,
        )

    def _create_edges_without_broad_reads(self, components: List[ComponentRecord],
                                          state: BuildState) -> List[GraphEdge]:
        edges: List[GraphEdge] = []
        edges.extend(self.edge_builder.create_import_edges(components, state.component_nodes, state.package_nodes))
        edges.extend(self.edge_builder.create_render_edges(state.render_index, state.component_nodes))
        edges.extend(self.edge_builder.create_contains_edges(state.component_nodes, state.element_nodes))
        edges.extend(self.edge_builder.create_handler_call_edges(state.element_bindings, state.handler_nodes))
        edges.extend(self.edge_builder.create_direct_call_edges(
            state.deferred_handlers, state.component_nodes, state.handler_nodes
        ))
        edges.extend(self.edge_builder.create_display_edges(state.sections))
        return edges

    def detect_backend_dead_code(self, backend: BackendRouteAnalysis, storage: StorageAnalysis) -> List[DeadCodeInfo]:
        """Dead-code entries for unreached endpoints and untouched tables and views."""
        dead_code: List[DeadCodeInfo] = []

        for endpoint in backend.unused_endpoints:
            dead_code.append(DeadCodeInfo(
                id=f"dead_api_{'_'.join(endpoint.name.split()).lower()}",
                name=endpoint.name,
                type="api",
                file=endpoint.file,
                line=endpoint.line,
                column=endpoint.column,
                reason="no_incoming_edges",
                confidence=dead_code_confidence(0),
                impact=dead_code_impact("api", 0),
                suggestions=[
                    "Remove unused API endpoint",
                    "Check if endpoint should be documented",
                    "Verify if endpoint is used by external systems",
                ],
            ))

        for entity in storage.unused_entities:
            dead_code.append(DeadCodeInfo(
                id=f"dead_{entity.entity_type}_{entity.name}",
                name=entity.name,
                type="database",
                file=entity.file,
                line=entity.line,
                column=entity.column,
                reason="no_incoming_edges",
                confidence=dead_code_confidence(0),
                impact=dead_code_impact("database", 0),
                suggestions=[
                    f"Remove unused database {entity.entity_type}",
                    f"Check if {entity.entity_type} is used by external systems",
                ],
            ))

        self.logger.info(f"Backend dead code detection: {len(dead_code)} items")
        return dead_code
