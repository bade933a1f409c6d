"""
Data models for the dependency graph.

Every node kind is its own model with its own typed fields; the JSON property
bag is derived from those fields when the graph is serialised.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .types import Cycle, RenderLocation


NodeType = Literal["function", "API", "table", "view", "external-dependency", "ui-section"]
NodeCategory = Literal["front-end", "middleware", "api", "database", "library"]
Relationship = Literal["imports", "renders", "contains", "calls", "reads", "writes to", "displays", "uses"]


class GraphNode(BaseModel):
    """Fields shared by every node kind."""
    model_config = ConfigDict(validate_assignment=True, arbitrary_types_allowed=True)

    id: str
    label: str
    node_type: NodeType
    node_category: NodeCategory
    live_code_score: int = Field(default=100, ge=0, le=100)
    file: str = ""
    line: Optional[int] = None
    column: Optional[int] = None
    code_ownership: Literal["internal", "external"] = "internal"

    @property
    def usage_type(self) -> str:
        """Entity type used in dead-code reports."""
        return "component"

    @property
    def is_live(self) -> bool:
        return self.live_code_score > 0

    def properties(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON node shape."""
        data: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "nodeType": self.node_type,
            "nodeCategory": self.node_category,
            "liveCodeScore": self.live_code_score,
            "file": self.file,
        }
        if self.line is not None:
            data["line"] = self.line
        if self.column is not None:
            data["column"] = self.column
        data["codeOwnership"] = self.code_ownership
        data["properties"] = self.properties()
        return data


class ComponentNode(GraphNode):
    kind: Literal["component"] = "component"
    node_type: NodeType = "function"
    node_category: NodeCategory = "front-end"
    component_type: str = "functional"
    props: List[str] = Field(default_factory=list)
    state: List[str] = Field(default_factory=list)
    hooks: List[str] = Field(default_factory=list)
    render_locations: List[RenderLocation] = Field(default_factory=list)

    def properties(self) -> Dict[str, Any]:
        return {
            "type": self.component_type,
            "props": self.props,
            "state": self.state,
            "hooks": self.hooks,
            "renderLocations": [location.to_dict() for location in self.render_locations],
        }


class ElementNode(GraphNode):
    kind: Literal["element"] = "element"
    node_type: NodeType = "function"
    node_category: NodeCategory = "front-end"
    element_type: str = "display"
    element_name: str = ""
    props: Dict[str, Any] = Field(default_factory=dict)
    event_handlers: List[Dict[str, Any]] = Field(default_factory=list)
    data_bindings: List[str] = Field(default_factory=list)
    parent_component: Optional[str] = None

    def properties(self) -> Dict[str, Any]:
        return {
            "elementType": self.element_type,
            "elementName": self.element_name,
            "props": self.props,
            "eventHandlers": self.event_handlers,
            "dataBindings": self.data_bindings,
            "parentComponent": self.parent_component,
        }


class HandlerNode(GraphNode):
    kind: Literal["handler"] = "handler"
    node_type: NodeType = "function"
    node_category: NodeCategory = "front-end"
    parent_component: Optional[str] = None
    event_type: Optional[str] = None
    handler_type: str = "unknown"

    @property
    def usage_type(self) -> str:
        return "function"

    def properties(self) -> Dict[str, Any]:
        return {
            "isEventHandler": True,
            "parentComponent": self.parent_component,
            "eventType": self.event_type,
            "handlerType": self.handler_type,
        }


class PackageNode(GraphNode):
    kind: Literal["package"] = "package"
    node_type: NodeType = "external-dependency"
    node_category: NodeCategory = "library"
    code_ownership: Literal["internal", "external"] = "external"
    package_name: str = ""
    is_infrastructure: bool = False

    def properties(self) -> Dict[str, Any]:
        return {
            "packageName": self.package_name,
            "importType": "external",
            "isInfrastructure": self.is_infrastructure,
        }


class SectionNode(GraphNode):
    kind: Literal["section"] = "section"
    node_type: NodeType = "ui-section"
    node_category: NodeCategory = "front-end"
    route_path: str = "/"
    route_component: str = ""
    section_type: str = "page"
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def properties(self) -> Dict[str, Any]:
        return {
            "routePath": self.route_path,
            "routeComponent": self.route_component,
            "sectionType": self.section_type,
            "metadata": self.metadata,
        }


class ApiNode(GraphNode):
    kind: Literal["api"] = "api"
    node_type: NodeType = "API"
    node_category: NodeCategory = "api"
    method: str = "GET"
    path: str = "/"
    normalized_path: str = "/"
    parameters: List[str] = Field(default_factory=list)
    middleware: List[str] = Field(default_factory=list)
    handlers: List[str] = Field(default_factory=list)

    @property
    def usage_type(self) -> str:
        return "api"

    def properties(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "path": self.path,
            "normalizedPath": self.normalized_path,
            "parameters": self.parameters,
            "middleware": self.middleware,
            "handlers": self.handlers,
            "isDeadCode": self.live_code_score == 0,
        }


class MiddlewareNode(GraphNode):
    kind: Literal["middleware"] = "middleware"
    node_type: NodeType = "function"
    node_category: NodeCategory = "middleware"

    @property
    def usage_type(self) -> str:
        return "function"

    def properties(self) -> Dict[str, Any]:
        return {"type": "middleware", "isDeadCode": self.live_code_score == 0}


class StorageNode(GraphNode):
    kind: Literal["storage"] = "storage"
    node_type: NodeType = "table"
    node_category: NodeCategory = "database"
    operations: List[str] = Field(default_factory=list)

    @property
    def usage_type(self) -> str:
        return "database"

    def properties(self) -> Dict[str, Any]:
        return {
            "entityType": self.node_type,
            "operations": self.operations,
            "isDeadCode": self.live_code_score == 0,
        }


AnyNode = Annotated[
    Union[ComponentNode, ElementNode, HandlerNode, PackageNode, SectionNode, ApiNode, MiddlewareNode, StorageNode],
    Field(discriminator="kind"),
]


class GraphEdge(BaseModel):
    """A directed, typed relationship between two node ids."""
    id: str
    source: str
    target: str
    relationship: Relationship
    properties: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self):
        return (self.source, self.target, self.relationship)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "relationship": self.relationship,
            "properties": self.properties,
        }


class GraphStatistics(BaseModel):
    lines_of_code: int = 0
    total_nodes: int = 0
    total_edges: int = 0
    dead_code_nodes: int = 0
    live_code_nodes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "linesOfCode": self.lines_of_code,
            "totalNodes": self.total_nodes,
            "totalEdges": self.total_edges,
            "deadCodeNodes": self.dead_code_nodes,
            "liveCodeNodes": self.live_code_nodes,
        }


class GraphMetadata(BaseModel):
    version: str = "1.0.0"
    timestamp: str
    repository_url: str = ""
    analysis_scope: Dict[str, List[str]] = Field(default_factory=lambda: {
        "includedTypes": ["frontend", "middleware", "database"],
        "excludedTypes": ["test", "node_modules"],
    })
    statistics: GraphStatistics = Field(default_factory=GraphStatistics)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "repositoryUrl": self.repository_url,
            "analysisScope": self.analysis_scope,
            "statistics": self.statistics.to_dict(),
        }


class DependencyGraph(BaseModel):
    """Nodes, edges and metadata produced by one build."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    nodes: List[AnyNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)
    metadata: GraphMetadata
    cycles: List[Cycle] = Field(default_factory=list)
    validation_issues: List[Dict[str, Any]] = Field(default_factory=list)

    def node_by_id(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_kind(self, kind: str) -> List[GraphNode]:
        return [node for node in self.nodes if node.kind == kind]

    def edges_with(self, relationship: str) -> List[GraphEdge]:
        return [edge for edge in self.edges if edge.relationship == relationship]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }
