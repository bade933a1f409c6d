"""
Frontend to backend connection mapping.

Matches API calls made by frontend components against backend route
endpoints, links endpoints to storage operations that live in the same file or
service, and reports whatever could not be mapped on either side.
"""
import re
from typing import List, Optional

from ..errors import AnalysisError
from ..types import (
    ApiCall,
    ApiEndpoint,
    ComponentRecord,
    Connection,
    ConnectionMappingResult,
    StorageOperation,
)
from ..utils.logger import app_logger
from .endpoint_normalizer import EndpointNormalizer


SERVICE_PATTERNS = [
    re.compile(r"/services?/([^/]+)"),
    re.compile(r"/api/([^/]+)"),
    re.compile(r"/controllers?/([^/]+)"),
    re.compile(r"/routes?/([^/]+)"),
]

PROXY_PATTERNS = [
    re.compile(r"/api/gateway"),
    re.compile(r"/proxy"),
    re.compile(r"/gateway"),
    re.compile(r"/api/v\d+/"),
    re.compile(r"/api/public"),
    re.compile(r"/api/internal"),
]

# Stripped in this order before re-matching a proxied call
PROXY_PREFIXES = [
    re.compile(r"/api/gateway"),
    re.compile(r"/proxy"),
    re.compile(r"/gateway"),
    re.compile(r"/api/v\d+"),
    re.compile(r"/api/public"),
    re.compile(r"/api/internal"),
]

UUID_SEGMENT = re.compile(r"/([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})", re.IGNORECASE)

UNKNOWN_COMPONENT = "unknown"
LOW_COVERAGE_PERCENTAGE = 70
LOW_CONFIDENCE = 0.6


def simple_normalize(path: str) -> str:
    """Loose normalization used for fallback matching: ids, uuids and case."""
    path = re.sub(r"/(\d+)", "/:id", path)
    path = UUID_SEGMENT.sub("/:uuid", path)
    return path.lower()


def service_name(file_path: str) -> str:
    """Service inferred from path segments such as ``/services/<name>/``."""
    path = "/" + file_path.replace("\\", "/").lstrip("/")
    for pattern in SERVICE_PATTERNS:
        match = pattern.search(path)
        if match:
            return match.group(1)
    return UNKNOWN_COMPONENT


def in_same_service(first: str, second: str) -> bool:
    first_service = service_name(first)
    return first_service == service_name(second) and first_service != UNKNOWN_COMPONENT


def is_proxy_call(call: ApiCall) -> bool:
    return any(pattern.search(call.endpoint) for pattern in PROXY_PATTERNS)


def strip_proxy_prefix(endpoint: str) -> str:
    """Remove gateway prefixes and re-root the remainder under ``/api``."""
    clean = endpoint
    for pattern in PROXY_PREFIXES:
        clean = pattern.sub("", clean, count=1)
    if not clean.startswith("/api"):
        clean = "/api" + clean
    return clean


class ConnectionMapper:
    """Maps frontend API calls onto backend endpoints and storage operations."""

    def __init__(self, normalizer: Optional[EndpointNormalizer] = None):
        self.normalizer = normalizer or EndpointNormalizer()
        self.logger = app_logger.bind(component="connection_mapper")

    def map_connections(self, components: List[ComponentRecord], endpoints: List[ApiEndpoint],
                        api_calls: List[ApiCall],
                        storage_operations: List[StorageOperation]) -> ConnectionMappingResult:
        """Build direct, indirect and proxy connections plus the unmapped lists."""
        components = components or []
        endpoints = endpoints or []
        api_calls = api_calls or []
        storage_operations = storage_operations or []

        self.logger.info(
            f"Starting connection mapping: {len(components)} components, {len(endpoints)} endpoints, "
            f"{len(api_calls)} API calls, {len(storage_operations)} storage operations"
        )

        try:
            for call in api_calls:
                if call.normalized_endpoint is None:
                    call.normalized_endpoint = self.normalizer.normalize(call.endpoint)

            direct = self.map_direct_connections(components, endpoints, api_calls)
            indirect = self.map_indirect_connections(endpoints, storage_operations)
            proxy = self.map_proxy_connections(components, endpoints, api_calls)
            connections = direct + indirect + proxy

            unmapped_frontend = self.find_unmapped_frontend(components, connections)
            unmapped_backend = self.find_unmapped_backend(endpoints, connections)

            total_mappable = len(components) + len(endpoints)
            coverage = (len(connections) * 2 / total_mappable) * 100 if total_mappable > 0 else 0.0
        except AnalysisError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to map frontend-backend connections: {e}")
            raise AnalysisError.from_exception("Failed to map frontend-backend connections", e)

        result = ConnectionMappingResult(
            connections=connections,
            unmapped_frontend=unmapped_frontend,
            unmapped_backend=unmapped_backend,
            coverage=coverage,
        )

        self.logger.info(
            f"Connection mapping completed: {len(connections)} connections "
            f"(direct={len(direct)}, indirect={len(indirect)}, proxy={len(proxy)}), "
            f"unmapped frontend={len(unmapped_frontend)}, unmapped backend={len(unmapped_backend)}, "
            f"coverage={coverage:.2f}%"
        )
        return result

    def _calls_for_component(self, component: ComponentRecord, api_calls: List[ApiCall]) -> List[ApiCall]:
        return [
            call for call in api_calls
            if call.file == component.file and (call.component is None or call.component == component.name)
        ]

    def _owner_of_call(self, call: ApiCall, components: List[ComponentRecord]) -> Optional[ComponentRecord]:
        same_file = [component for component in components if component.file == call.file]
        for component in same_file:
            if component.name == call.component:
                return component
        return same_file[0] if same_file else None

    def map_direct_connections(self, components: List[ComponentRecord], endpoints: List[ApiEndpoint],
                               api_calls: List[ApiCall]) -> List[Connection]:
        connections: List[Connection] = []

        for component in components:
            for call in self._calls_for_component(component, api_calls):
                endpoint = self.find_matching_endpoint(call, endpoints)
                if endpoint is None:
                    continue
                connections.append(Connection(
                    frontend=component.name,
                    backend=endpoint.name,
                    kind="direct",
                    confidence=self.calculate_confidence(call, endpoint),
                    path=[component.name, call.name, endpoint.name],
                    api_calls=[call],
                ))
                self.logger.debug(f"Direct connection {component.name} -> {endpoint.name}")

        return connections

    def map_indirect_connections(self, endpoints: List[ApiEndpoint],
                                 storage_operations: List[StorageOperation]) -> List[Connection]:
        """Endpoint to storage links through a shared file or service name."""
        connections: List[Connection] = []

        for endpoint in endpoints:
            operations = [
                operation for operation in storage_operations
                if operation.file == endpoint.file or in_same_service(operation.file, endpoint.file)
            ]
            if not operations:
                continue
            connections.append(Connection(
                frontend=UNKNOWN_COMPONENT,
                backend=endpoint.name,
                kind="indirect",
                confidence=0.8,
                path=[endpoint.name, "service-layer", "database"],
                storage_operations=operations,
            ))

        return connections

    def map_proxy_connections(self, components: List[ComponentRecord], endpoints: List[ApiEndpoint],
                              api_calls: List[ApiCall]) -> List[Connection]:
        connections: List[Connection] = []

        for call in api_calls:
            if not is_proxy_call(call):
                continue
            endpoint = self.find_endpoint_behind_proxy(call, endpoints)
            if endpoint is None:
                continue
            component = self._owner_of_call(call, components)
            if component is None:
                continue
            connections.append(Connection(
                frontend=component.name,
                backend=endpoint.name,
                kind="proxy",
                confidence=0.7,
                path=[component.name, "proxy", endpoint.name],
                api_calls=[call],
            ))

        return connections

    def find_matching_endpoint(self, call: ApiCall, endpoints: List[ApiEndpoint]) -> Optional[ApiEndpoint]:
        """Exact or normalized match first, then loose normalization, then containment."""
        same_method = [endpoint for endpoint in endpoints if endpoint.method == call.method]
        call_normalized = call.normalized_endpoint or self.normalizer.normalize(call.endpoint)

        for endpoint in same_method:
            if endpoint.path == call.endpoint or self.normalizer.normalize(endpoint.path) == call_normalized:
                return endpoint

        call_simple = simple_normalize(call.endpoint)
        for endpoint in same_method:
            if simple_normalize(endpoint.path) == call_simple:
                return endpoint

        if call_simple.strip("/"):
            for endpoint in same_method:
                endpoint_simple = simple_normalize(endpoint.path)
                # The root path is a substring of everything
                if not endpoint_simple.strip("/"):
                    continue
                if endpoint_simple in call_simple or call_simple in endpoint_simple:
                    return endpoint

        return None

    def find_endpoint_behind_proxy(self, call: ApiCall, endpoints: List[ApiEndpoint]) -> Optional[ApiEndpoint]:
        clean = strip_proxy_prefix(call.endpoint)
        clean_normalized = self.normalizer.normalize(clean)
        for endpoint in endpoints:
            if endpoint.path == clean or self.normalizer.normalize(endpoint.path) == clean_normalized:
                return endpoint
        return None

    def calculate_confidence(self, call: ApiCall, endpoint: ApiEndpoint) -> float:
        confidence = 0.5
        if call.endpoint == endpoint.path:
            confidence += 0.4
        if call.method == endpoint.method:
            confidence += 0.2
        call_normalized = call.normalized_endpoint or self.normalizer.normalize(call.endpoint)
        if call_normalized == self.normalizer.normalize(endpoint.path):
            confidence += 0.3
        return min(confidence, 1.0)

    def find_unmapped_frontend(self, components: List[ComponentRecord],
                               connections: List[Connection]) -> List[str]:
        mapped = {
            connection.frontend for connection in connections
            if connection.frontend != UNKNOWN_COMPONENT
        }
        return [component.name for component in components if component.name not in mapped]

    def find_unmapped_backend(self, endpoints: List[ApiEndpoint], connections: List[Connection]) -> List[str]:
        mapped = {connection.backend for connection in connections}
        return [endpoint.name for endpoint in endpoints if endpoint.name not in mapped]

    def analyze_connection_quality(self, result: ConnectionMappingResult) -> List[str]:
        """Human-readable recommendations about the mapping."""
        recommendations: List[str] = []

        if result.coverage < LOW_COVERAGE_PERCENTAGE:
            recommendations.append(
                f"Low mapping coverage ({result.coverage:.1f}%). Consider improving API documentation "
                "or adding more explicit connections."
            )

        if result.unmapped_frontend:
            recommendations.append(
                f"Found {len(result.unmapped_frontend)} unmapped frontend components. "
                "Consider adding API connections or removing unused components."
            )

        if result.unmapped_backend:
            recommendations.append(
                f"Found {len(result.unmapped_backend)} unmapped backend endpoints. "
                "Consider adding frontend connections or removing unused endpoints."
            )

        low_confidence = [c for c in result.connections if c.confidence < LOW_CONFIDENCE]
        if low_confidence:
            recommendations.append(
                f"{len(low_confidence)} connections have low confidence scores. Consider reviewing these mappings."
            )

        proxies = [c for c in result.connections if c.kind == "proxy"]
        if proxies:
            recommendations.append(
                f"{len(proxies)} connections go through proxies. Consider documenting proxy routing rules."
            )

        return recommendations
