from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum


class FileRole(Enum):
    """Architectural role of a source file."""
    FRONTEND = "frontend"
    BACKEND = "backend"
    STORAGE = "storage"


class ComponentKind(Enum):
    """How a component is defined; modules hold file-level leftovers."""
    FUNCTIONAL = "functional"
    CLASS = "class"
    MODULE = "module"


@dataclass
class SourceFile:
    """Represents a source file in the analyzed codebase."""
    path: str
    absolute_path: str
    extension: str
    role: FileRole = FileRole.FRONTEND
    language: Optional[str] = None
    size: int = 0
    last_modified: float = 0.0
    content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "absolute_path": self.absolute_path,
            "extension": self.extension,
            "role": self.role.value,
            "language": self.language,
            "size": self.size,
            "last_modified": self.last_modified,
        }


@dataclass
class ImportSpecifier:
    """A single binding introduced by an import declaration."""
    name: str
    type: str = "named"  # default | named | namespace
    imported: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "imported": self.imported}


@dataclass
class ImportRecord:
    """Import information extracted from a syntax tree."""
    source: str
    specifiers: List[ImportSpecifier] = field(default_factory=list)
    default_import: Optional[str] = None
    namespace_import: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    @property
    def is_relative(self) -> bool:
        return self.source.startswith(".") or self.source.startswith("/")

    def imported_names(self) -> List[str]:
        """All local names bound by this import."""
        names = [spec.name for spec in self.specifiers]
        if self.default_import and self.default_import not in names:
            names.append(self.default_import)
        if self.namespace_import and self.namespace_import not in names:
            names.append(self.namespace_import)
        return names

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source": self.source,
            "specifiers": [spec.to_dict() for spec in self.specifiers],
            "default_import": self.default_import,
            "namespace_import": self.namespace_import,
            "line": self.line,
            "column": self.column,
        }


@dataclass
class ExportRecord:
    """Export information extracted from a syntax tree."""
    name: str
    type: str = "named"  # default | named | all
    source: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "source": self.source,
            "line": self.line,
            "column": self.column,
        }


@dataclass
class ComponentDefinition:
    """A UI component found at a definition site."""
    name: str
    file: str
    line: int
    column: int
    kind: ComponentKind = ComponentKind.FUNCTIONAL
    exported: bool = False
    extends_component: Optional[str] = None
    props: List[str] = field(default_factory=list)
    hooks: List[str] = field(default_factory=list)
    start_byte: int = 0
    end_byte: int = 0

    def encloses(self, start_byte: int, end_byte: int) -> bool:
        """Check whether a byte range lies inside this definition."""
        return self.start_byte <= start_byte and end_byte <= self.end_byte

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "kind": self.kind.value,
            "exported": self.exported,
            "extends_component": self.extends_component,
            "props": self.props,
            "hooks": self.hooks,
        }


@dataclass
class EventHandlerBinding:
    """An `on<Event>` attribute and the functions it resolves to."""
    event: str
    kind: str = "unknown"  # function-reference | member-access | inline-closure | unknown
    callees: List[str] = field(default_factory=list)
    source_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event,
            "kind": self.kind,
            "callees": self.callees,
            "source_text": self.source_text,
        }


@dataclass
class InformativeElement:
    """A markup element or state/data construct worth modeling."""
    kind: str  # display | input | data-source | state-management
    name: str
    file: str
    line: int = 0
    column: int = 0
    component: Optional[str] = None
    event_handlers: List[EventHandlerBinding] = field(default_factory=list)
    data_bindings: List[str] = field(default_factory=list)
    props: Dict[str, Any] = field(default_factory=dict)
    semantic_identifier: Optional[str] = None

    @property
    def has_semantic_identifier(self) -> bool:
        return bool(self.semantic_identifier)

    @property
    def has_event_handlers(self) -> bool:
        return len(self.event_handlers) > 0

    def callee_names(self) -> List[str]:
        """Distinct callee names across all handlers, in binding order."""
        names: List[str] = []
        for binding in self.event_handlers:
            for callee in binding.callees:
                if callee not in names:
                    names.append(callee)
        return names

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind,
            "name": self.name,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "component": self.component,
            "event_handlers": [binding.to_dict() for binding in self.event_handlers],
            "data_bindings": self.data_bindings,
            "props": self.props,
            "semantic_identifier": self.semantic_identifier,
            "has_semantic_identifier": self.has_semantic_identifier,
        }


@dataclass
class RouteInfo:
    """A navigable route and the component that handles it."""
    path: str
    component: str
    label: Optional[str] = None
    section_type: str = "page"
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "component": self.component,
            "label": self.label,
            "section_type": self.section_type,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "metadata": self.metadata,
        }


@dataclass
class JsxUsage:
    """A capitalised JSX usage that carries no data binding or handler."""
    name: str
    file: str
    line: int = 0
    column: int = 0
    component: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "component": self.component,
        }


@dataclass
class FileFacts:
    """Everything the fact extractor learned about one file."""
    file: str
    imports: List[ImportRecord] = field(default_factory=list)
    exports: List[ExportRecord] = field(default_factory=list)
    components: List[ComponentDefinition] = field(default_factory=list)
    elements: List[InformativeElement] = field(default_factory=list)
    jsx_usages: List[JsxUsage] = field(default_factory=list)
    routes: List[RouteInfo] = field(default_factory=list)
    functions: List["FunctionInfo"] = field(default_factory=list)
    variables: List["VariableInfo"] = field(default_factory=list)
    lines_of_code: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "imports": [record.to_dict() for record in self.imports],
            "exports": [record.to_dict() for record in self.exports],
            "components": [component.to_dict() for component in self.components],
            "elements": [element.to_dict() for element in self.elements],
            "jsx_usages": [usage.to_dict() for usage in self.jsx_usages],
            "routes": [route.to_dict() for route in self.routes],
            "lines_of_code": self.lines_of_code,
        }


@dataclass
class ComponentRecord:
    """A component (or file-level module) with the facts the graph builder consumes."""
    name: str
    file: str
    type: ComponentKind = ComponentKind.FUNCTIONAL
    line: int = 0
    column: int = 0
    exported: bool = False
    props: List[str] = field(default_factory=list)
    hooks: List[str] = field(default_factory=list)
    imports: List[ImportRecord] = field(default_factory=list)
    exports: List[ExportRecord] = field(default_factory=list)
    informative_elements: List[InformativeElement] = field(default_factory=list)
    jsx_usages: List[JsxUsage] = field(default_factory=list)
    lines_of_code: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "file": self.file,
            "type": self.type.value,
            "line": self.line,
            "column": self.column,
            "exported": self.exported,
            "props": self.props,
            "hooks": self.hooks,
            "imports": [record.to_dict() for record in self.imports],
            "exports": [record.to_dict() for record in self.exports],
            "informative_elements": [element.to_dict() for element in self.informative_elements],
        }


@dataclass
class RenderLocation:
    """Where a component is rendered through a capitalised JSX usage."""
    file: str
    line: int
    column: int
    parent_component: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "parentComponent": self.parent_component,
        }


@dataclass
class FunctionInfo:
    """A function definition with the names it calls."""
    name: str
    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    calls: List[str] = field(default_factory=list)
    is_exported: bool = False
    is_imported: bool = False


@dataclass
class VariableInfo:
    """A variable declaration with the names that reference it."""
    name: str
    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    is_used: bool = False
    used_in: List[str] = field(default_factory=list)
    is_exported: bool = False
    is_imported: bool = False


@dataclass
class ApiCall:
    """A frontend call to an HTTP endpoint."""
    name: str
    endpoint: str
    method: str
    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    component: Optional[str] = None
    normalized_endpoint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "endpoint": self.endpoint,
            "method": self.method,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "component": self.component,
            "normalized_endpoint": self.normalized_endpoint,
        }


@dataclass
class ApiEndpoint:
    """A backend route handler."""
    name: str
    path: str
    method: str
    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    handler: Optional[str] = None
    middleware: List[str] = field(default_factory=list)
    parameters: List[str] = field(default_factory=list)
    live_code_score: int = 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "path": self.path,
            "method": self.method,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "handler": self.handler,
            "middleware": self.middleware,
            "parameters": self.parameters,
            "live_code_score": self.live_code_score,
        }


@dataclass
class MiddlewareInfo:
    """A middleware function declared in a backend file."""
    name: str
    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    type: str = "custom"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "file": self.file, "line": self.line, "column": self.column, "type": self.type}


@dataclass
class BackendRouteAnalysis:
    """Endpoints and middleware found in backend files."""
    endpoints: List[ApiEndpoint] = field(default_factory=list)
    middleware: List[MiddlewareInfo] = field(default_factory=list)
    used_endpoints: List[ApiEndpoint] = field(default_factory=list)
    unused_endpoints: List[ApiEndpoint] = field(default_factory=list)
    dead_code_percentage: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "endpoints": [endpoint.to_dict() for endpoint in self.endpoints],
            "middleware": [item.to_dict() for item in self.middleware],
            "used_endpoints": [endpoint.name for endpoint in self.used_endpoints],
            "unused_endpoints": [endpoint.name for endpoint in self.unused_endpoints],
            "dead_code_percentage": self.dead_code_percentage,
        }


@dataclass
class StorageOperation:
    """A read or write against a storage entity."""
    operation: str  # SELECT | INSERT | UPDATE | DELETE | UPSERT | CREATE | ALTER | DROP
    table: str
    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    entity_type: str = "table"  # table | view
    query: Optional[str] = None
    source: str = "sql"  # sql | orm

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "table": self.table,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "entity_type": self.entity_type,
            "query": self.query,
            "source": self.source,
        }


@dataclass
class StorageEntity:
    """A table or view referenced by storage operations."""
    name: str
    entity_type: str = "table"
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    operations: List[str] = field(default_factory=list)
    live_code_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "entity_type": self.entity_type,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "operations": self.operations,
            "live_code_score": self.live_code_score,
        }


@dataclass
class StorageAnalysis:
    """Storage operations and the entities they touch."""
    operations: List[StorageOperation] = field(default_factory=list)
    entities: List[StorageEntity] = field(default_factory=list)
    used_entities: List[StorageEntity] = field(default_factory=list)
    unused_entities: List[StorageEntity] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operations": [operation.to_dict() for operation in self.operations],
            "entities": [entity.to_dict() for entity in self.entities],
            "used_entities": [entity.name for entity in self.used_entities],
            "unused_entities": [entity.name for entity in self.unused_entities],
        }


@dataclass
class Connection:
    """A matched pairing between a frontend caller and a backend endpoint."""
    frontend: str
    backend: str
    kind: str  # direct | indirect | proxy
    confidence: float
    path: List[str] = field(default_factory=list)
    api_calls: List[ApiCall] = field(default_factory=list)
    storage_operations: List[StorageOperation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "frontend": self.frontend,
            "backend": self.backend,
            "kind": self.kind,
            "confidence": self.confidence,
            "path": self.path,
            "api_calls": [call.to_dict() for call in self.api_calls],
            "storage_operations": [operation.to_dict() for operation in self.storage_operations],
        }


@dataclass
class ConnectionMappingResult:
    """Connections plus the entities that could not be mapped."""
    connections: List[Connection] = field(default_factory=list)
    unmapped_frontend: List[str] = field(default_factory=list)
    unmapped_backend: List[str] = field(default_factory=list)
    coverage: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connections": [connection.to_dict() for connection in self.connections],
            "unmapped_frontend": self.unmapped_frontend,
            "unmapped_backend": self.unmapped_backend,
            "coverage": self.coverage,
        }


@dataclass
class UsageLocation:
    """Where an entity is used."""
    file: str
    usage_type: str  # import | call | reference | render
    line: Optional[int] = None
    column: Optional[int] = None
    context: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "usage_type": self.usage_type,
            "line": self.line,
            "column": self.column,
            "context": self.context,
        }


@dataclass
class UsageInfo:
    """Usage summary for one component, function or variable."""
    id: str
    name: str
    type: str  # component | function | variable | api | database
    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    usage_locations: List[UsageLocation] = field(default_factory=list)
    is_used: bool = False
    live_code_score: int = 0

    @property
    def usage_count(self) -> int:
        return len(self.usage_locations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "usage_locations": [location.to_dict() for location in self.usage_locations],
            "is_used": self.is_used,
            "usage_count": self.usage_count,
            "live_code_score": self.live_code_score,
        }


@dataclass
class UsageStatistics:
    """Aggregate usage counts across entity types."""
    total_components: int = 0
    used_components: int = 0
    unused_components: int = 0
    total_functions: int = 0
    used_functions: int = 0
    unused_functions: int = 0
    total_variables: int = 0
    used_variables: int = 0
    unused_variables: int = 0
    total_apis: int = 0
    used_apis: int = 0
    unused_apis: int = 0
    total_database_entities: int = 0
    used_database_entities: int = 0
    unused_database_entities: int = 0
    dead_code_percentage: float = 0.0
    live_code_percentage: float = 0.0

    @property
    def total_items(self) -> int:
        return (
            self.total_components + self.total_functions + self.total_variables
            + self.total_apis + self.total_database_entities
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalComponents": self.total_components,
            "usedComponents": self.used_components,
            "unusedComponents": self.unused_components,
            "totalFunctions": self.total_functions,
            "usedFunctions": self.used_functions,
            "unusedFunctions": self.unused_functions,
            "totalVariables": self.total_variables,
            "usedVariables": self.used_variables,
            "unusedVariables": self.unused_variables,
            "totalAPIs": self.total_apis,
            "usedAPIs": self.used_apis,
            "unusedAPIs": self.unused_apis,
            "totalDatabaseEntities": self.total_database_entities,
            "usedDatabaseEntities": self.used_database_entities,
            "unusedDatabaseEntities": self.unused_database_entities,
            "deadCodePercentage": self.dead_code_percentage,
            "liveCodePercentage": self.live_code_percentage,
        }


@dataclass
class DeadCodeInfo:
    """A dead-code report entry."""
    id: str
    name: str
    type: str
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    reason: str = "unused"  # unused | unreachable | no_incoming_edges
    confidence: float = 0.9
    impact: str = "medium"  # low | medium | high
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "reason": self.reason,
            "confidence": self.confidence,
            "impact": self.impact,
            "suggestions": self.suggestions,
        }


@dataclass
class PerformanceWarning:
    """A warning about analysis scale or code health."""
    type: str
    severity: str
    message: str
    recommendation: str
    threshold: float
    actual_value: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "recommendation": self.recommendation,
            "threshold": self.threshold,
            "actualValue": self.actual_value,
        }


@dataclass
class Cycle:
    """A dependency cycle over node ids."""
    nodes: List[str]
    severity: str  # warning | error
    description: str
    type: str = "circular-dependency"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "nodes": self.nodes,
            "severity": self.severity,
            "description": self.description,
        }


@dataclass
class PatternInfo:
    """A detected endpoint parameter pattern."""
    pattern: str
    regex: str
    parameter_name: str
    confidence: float
    examples: List[str] = field(default_factory=list)
    frequency: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "regex": self.regex,
            "parameter_name": self.parameter_name,
            "confidence": self.confidence,
            "examples": self.examples,
            "frequency": self.frequency,
        }


@dataclass
class PatternAnalysisResult:
    """Output of endpoint pattern analysis."""
    normalized_endpoints: List[str] = field(default_factory=list)
    pattern_distribution: Dict[str, int] = field(default_factory=dict)
    detected_patterns: List[PatternInfo] = field(default_factory=list)
    most_common_pattern: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "normalized_endpoints": self.normalized_endpoints,
            "pattern_distribution": self.pattern_distribution,
            "detected_patterns": [pattern.to_dict() for pattern in self.detected_patterns],
            "most_common_pattern": self.most_common_pattern,
        }


@dataclass
class ValidationResult:
    """Result of validating a graph output document."""
    is_valid: bool
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": self.errors, "warnings": self.warnings}
