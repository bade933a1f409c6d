"""
Backend route discovery.

Finds Express-style route registrations (``app.get('/users', auth, handler)``)
and middleware declarations in backend files.
"""
import re
from typing import List, Optional

from tree_sitter import Node

from ..errors import AnalysisError, ParseFailure
from ..models import ApiNode, GraphNode, MiddlewareNode
from ..parser.jsx_elements import template_to_path
from ..parser.syntax_tree import SyntaxTreeParser, node_position, node_text
from ..scanner.local_codebase_scanner import classify_file_role
from ..types import ApiCall, ApiEndpoint, BackendRouteAnalysis, FileRole, MiddlewareInfo, SourceFile
from ..utils.logger import app_logger
from .endpoint_normalizer import EndpointNormalizer


ROUTE_METHODS = {"get", "post", "put", "delete", "patch", "head", "options"}
PATH_PARAMETER_PATTERN = re.compile(r":(\w+)")
MIDDLEWARE_NAME_PATTERN = re.compile(r"middleware|auth|cors|helmet|logger|validate|rateLimit", re.IGNORECASE)
FUNCTION_TYPES = {"arrow_function", "function_expression", "function"}


def is_backend_file(source_file: SourceFile) -> bool:
    return source_file.role == FileRole.BACKEND or classify_file_role(source_file.path) == FileRole.BACKEND


def is_middleware_name(name: str) -> bool:
    return bool(MIDDLEWARE_NAME_PATTERN.search(name))


def path_parameters(path: str) -> List[str]:
    return PATH_PARAMETER_PATTERN.findall(path)


def _member_name(node: Node) -> Optional[str]:
    obj = node.child_by_field_name("object")
    prop = node.child_by_field_name("property")
    if obj is None or prop is None or obj.type != "identifier":
        return None
    return f"{node_text(obj)}.{node_text(prop)}"


class ApiEndpointAnalyzer:
    """Extracts route endpoints and middleware from backend sources."""

    def __init__(self, parser: Optional[SyntaxTreeParser] = None, normalizer: Optional[EndpointNormalizer] = None):
        self.parser = parser or SyntaxTreeParser()
        self.normalizer = normalizer or EndpointNormalizer()
        self.anonymous_handler_counter = 0
        self.logger = app_logger.bind(component="api_endpoint_analyzer")

    def analyze_backend_files(self, files: List[SourceFile]) -> BackendRouteAnalysis:
        """Collect endpoints and middleware from every backend file."""
        self.logger.info(f"Starting backend API endpoint analysis for {len(files)} files")
        endpoints: List[ApiEndpoint] = []
        middleware: List[MiddlewareInfo] = []
        seen_middleware = set()

        try:
            for source_file in files:
                if source_file is None or not is_backend_file(source_file):
                    continue
                if not source_file.content or not self.parser.supports(source_file.path):
                    continue

                try:
                    parsed = self.parser.parse(source_file.path, source_file.content)
                except ParseFailure as e:
                    self.logger.error(f"Error analyzing backend file {source_file.path}: {e.message}")
                    continue

                endpoints.extend(self.extract_endpoints(parsed.root_node, source_file.path))
                for info in self.extract_middleware(parsed.root_node, source_file.path):
                    if info.name not in seen_middleware:
                        seen_middleware.add(info.name)
                        middleware.append(info)
        except AnalysisError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to analyze backend files: {e}")
            raise AnalysisError.from_exception("Failed to analyze backend files", e)

        used = [endpoint for endpoint in endpoints if endpoint.live_code_score > 0]
        unused = [endpoint for endpoint in endpoints if endpoint.live_code_score == 0]
        analysis = BackendRouteAnalysis(
            endpoints=endpoints,
            middleware=middleware,
            used_endpoints=used,
            unused_endpoints=unused,
            dead_code_percentage=round(len(unused) / len(endpoints) * 100, 2) if endpoints else 0.0,
        )

        self.logger.info(
            f"Backend API endpoint analysis completed: {len(endpoints)} endpoints, "
            f"{len(middleware)} middleware"
        )
        return analysis

    def extract_endpoints(self, root: Node, path: str) -> List[ApiEndpoint]:
        endpoints: List[ApiEndpoint] = []
        stack = [root]
        while stack:
            node = stack.pop()
            stack.extend(reversed(node.children))
            if node.type != "call_expression":
                continue
            endpoint = self._endpoint_from_call(node, path)
            if endpoint is not None:
                endpoints.append(endpoint)
        return endpoints

    def _endpoint_from_call(self, call: Node, file_path: str) -> Optional[ApiEndpoint]:
        function = call.child_by_field_name("function")
        if function is None or function.type != "member_expression":
            return None
        verb = node_text(function.child_by_field_name("property")).lower()
        if verb not in ROUTE_METHODS:
            return None

        arguments = call.child_by_field_name("arguments")
        args = [a for a in arguments.named_children if a.type != "comment"] if arguments is not None else []
        if not args or args[0].type not in ("string", "template_string"):
            return None

        route_path = template_to_path(args[0])
        if not route_path.startswith("/") and route_path != "*":
            return None

        method = verb.upper()
        line, column = node_position(call)
        endpoint = ApiEndpoint(
            name=f"{method} {route_path}",
            path=route_path,
            method=method,
            file=file_path,
            line=line,
            column=column,
            handler=self._route_handler(args),
            middleware=self._route_middleware(args),
            parameters=path_parameters(route_path),
        )
        self.logger.debug(f"Found endpoint {endpoint.name} in {file_path}:{line}")
        return endpoint

    def _route_middleware(self, args: List[Node]) -> List[str]:
        """Arguments between the path and the final handler."""
        names: List[str] = []
        for argument in args[1:-1]:
            if argument.type == "identifier":
                names.append(f"middleware_{node_text(argument)}")
            elif argument.type == "member_expression":
                name = _member_name(argument)
                if name:
                    names.append(f"middleware_{name}")
        return names

    def _route_handler(self, args: List[Node]) -> Optional[str]:
        if len(args) < 2:
            return None
        last = args[-1]
        if last.type == "identifier":
            return f"handler_{node_text(last)}"
        if last.type in FUNCTION_TYPES:
            name = f"anonymous_handler_{self.anonymous_handler_counter}"
            self.anonymous_handler_counter += 1
            return name
        if last.type == "member_expression":
            name = _member_name(last)
            if name:
                return f"handler_{name}"
        return None

    def extract_middleware(self, root: Node, path: str) -> List[MiddlewareInfo]:
        """Declared functions, variables and ``module.exports`` keys with middleware-like names."""
        found: List[MiddlewareInfo] = []
        stack = [root]
        while stack:
            node = stack.pop()
            stack.extend(reversed(node.children))

            if node.type in ("variable_declarator", "function_declaration"):
                name_node = node.child_by_field_name("name")
                if name_node is not None and name_node.type == "identifier" and is_middleware_name(node_text(name_node)):
                    line, column = node_position(node)
                    found.append(MiddlewareInfo(name=node_text(name_node), file=path, line=line, column=column))

            elif node.type == "assignment_expression":
                left = node.child_by_field_name("left")
                right = node.child_by_field_name("right")
                if left is None or right is None or node_text(left) != "module.exports" or right.type != "object":
                    continue
                for prop in right.named_children:
                    key = None
                    if prop.type == "pair":
                        key = node_text(prop.child_by_field_name("key"))
                    elif prop.type == "shorthand_property_identifier":
                        key = node_text(prop)
                    if key and is_middleware_name(key):
                        line, column = node_position(prop)
                        found.append(MiddlewareInfo(name=key, file=path, line=line, column=column, type="exported"))

        return found

    def identify_used_unused_endpoints(self, analysis: BackendRouteAnalysis,
                                       api_calls: List[ApiCall]) -> BackendRouteAnalysis:
        """Score endpoints by whether any frontend call reaches them."""
        call_paths = {call.endpoint for call in api_calls}
        call_normalized = {
            call.normalized_endpoint or self.normalizer.normalize(call.endpoint) for call in api_calls
        }

        for endpoint in analysis.endpoints:
            reached = (
                endpoint.path in call_paths
                or self.normalizer.normalize(endpoint.path) in call_normalized
            )
            endpoint.live_code_score = 100 if reached else 0

        analysis.used_endpoints = [e for e in analysis.endpoints if e.live_code_score > 0]
        analysis.unused_endpoints = [e for e in analysis.endpoints if e.live_code_score == 0]
        total = len(analysis.endpoints)
        analysis.dead_code_percentage = round(len(analysis.unused_endpoints) / total * 100, 2) if total else 0.0

        self.logger.info(
            f"Endpoint usage: {len(analysis.used_endpoints)} used, {len(analysis.unused_endpoints)} unused "
            f"({analysis.dead_code_percentage}% dead)"
        )
        return analysis

    def map_routes_to_nodes(self, analysis: BackendRouteAnalysis, id_generator) -> List[GraphNode]:
        """API nodes for endpoints and function nodes for middleware."""
        nodes: List[GraphNode] = []

        for endpoint in analysis.endpoints:
            nodes.append(ApiNode(
                id=id_generator.next_node_id(),
                label=endpoint.name,
                live_code_score=endpoint.live_code_score,
                file=endpoint.file,
                line=endpoint.line,
                column=endpoint.column,
                method=endpoint.method,
                path=endpoint.path,
                normalized_path=self.normalizer.normalize(endpoint.path),
                parameters=endpoint.parameters,
                middleware=endpoint.middleware,
                handlers=[endpoint.handler] if endpoint.handler else [],
            ))

        for info in analysis.middleware:
            nodes.append(MiddlewareNode(
                id=id_generator.next_node_id(),
                label=info.name,
                live_code_score=100,
                file=info.file,
                line=info.line,
                column=info.column,
            ))

        return nodes
