import pytest
from pathlib import Path
import sys

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from code2graph.analysis.api_endpoint_analyzer import ApiEndpointAnalyzer, is_middleware_name, path_parameters
from code2graph.graph.id_generator import IdGenerator
from code2graph.models import ApiNode, MiddlewareNode
from code2graph.types import ApiCall, FileRole
from conftest import SAMPLE_SERVER, source_file


ROUTER_SOURCE = """const router = require('express').Router();
const controller = require('./controller');

router.post('/orders/:orderId/items/:itemId', validateOrder, controller.create);
router.get(`/orders/${prefix}/recent`, listRecent);
router.get('*', notFound);
router.get('relative', ignored);
config.get('key');

module.exports = { corsMiddleware: cors(), router };
"""


class TestApiEndpointAnalyzer:
    """Route registrations and middleware in backend files."""

    def setup_method(self):
        self.analyzer = ApiEndpointAnalyzer()

    def test_express_server(self):
        analysis = self.analyzer.analyze_backend_files([source_file("server.js", SAMPLE_SERVER, FileRole.BACKEND)])

        assert [e.name for e in analysis.endpoints] == ["GET /api/users", "DELETE /api/legacy"]
        users = analysis.endpoints[0]
        assert users.method == "GET"
        assert users.middleware == ["middleware_authMiddleware"]
        assert users.handler == "anonymous_handler_0"
        assert users.line == 9
        assert users.file == "server.js"
        assert analysis.endpoints[1].handler == "anonymous_handler_1"
        assert analysis.endpoints[1].middleware == []

        assert [m.name for m in analysis.middleware] == ["authMiddleware"]
        assert analysis.dead_code_percentage == 0.0

    def test_router_file(self):
        analysis = self.analyzer.analyze_backend_files([
            source_file("routes/orders.js", ROUTER_SOURCE, FileRole.BACKEND)
        ])

        assert [e.name for e in analysis.endpoints] == [
            "POST /orders/:orderId/items/:itemId",
            "GET /orders/:param/recent",
            "GET *",
        ]
        create = analysis.endpoints[0]
        assert create.parameters == ["orderId", "itemId"]
        assert create.middleware == ["middleware_validateOrder"]
        assert create.handler == "handler_controller.create"
        assert analysis.endpoints[1].handler == "handler_listRecent"

        exported = [m for m in analysis.middleware if m.type == "exported"]
        assert [m.name for m in exported] == ["corsMiddleware"]

    def test_frontend_files_are_skipped(self):
        analysis = self.analyzer.analyze_backend_files([
            source_file("src/App.tsx", "app.get('/x', handler);", FileRole.FRONTEND)
        ])
        assert analysis.endpoints == []

    def test_middleware_deduplicated_by_name(self):
        source = "function authMiddleware(req, res, next) { next(); }\n"
        analysis = self.analyzer.analyze_backend_files([
            source_file("server/a.js", source, FileRole.BACKEND),
            source_file("server/b.js", source, FileRole.BACKEND),
        ])
        assert len(analysis.middleware) == 1
        assert analysis.middleware[0].file == "server/a.js"

    def test_identify_used_unused_endpoints(self):
        analysis = self.analyzer.analyze_backend_files([source_file("server.js", SAMPLE_SERVER, FileRole.BACKEND)])
        calls = [ApiCall(name="fetch", endpoint="/api/users", method="GET", file="src/UserList.tsx")]

        analysis = self.analyzer.identify_used_unused_endpoints(analysis, calls)

        assert [e.name for e in analysis.used_endpoints] == ["GET /api/users"]
        assert [e.name for e in analysis.unused_endpoints] == ["DELETE /api/legacy"]
        assert analysis.dead_code_percentage == 50.0

    def test_map_routes_to_nodes(self):
        analysis = self.analyzer.analyze_backend_files([source_file("server.js", SAMPLE_SERVER, FileRole.BACKEND)])
        analysis = self.analyzer.identify_used_unused_endpoints(analysis, [])

        nodes = self.analyzer.map_routes_to_nodes(analysis, IdGenerator())

        assert [n.id for n in nodes] == ["node_1", "node_2", "node_3"]
        assert isinstance(nodes[0], ApiNode)
        assert nodes[0].node_type == "API"
        assert nodes[0].to_dict()["properties"]["isDeadCode"] is True
        assert nodes[0].handlers == ["anonymous_handler_0"]
        assert isinstance(nodes[2], MiddlewareNode)
        assert nodes[2].node_category == "middleware"
        assert nodes[2].live_code_score == 100


class TestHelpers:

    def test_is_middleware_name(self):
        assert is_middleware_name("authMiddleware")
        assert is_middleware_name("rateLimiter")
        assert not is_middleware_name("listUsers")

    def test_path_parameters(self):
        assert path_parameters("/users/:id/posts/:postId") == ["id", "postId"]
        assert path_parameters("/health") == []
