import pytest
from pathlib import Path
import sys

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from code2graph.analysis.endpoint_normalizer import EndpointNormalizer


class TestEndpointNormalizer:
    """Segment classification and pattern analysis."""

    def setup_method(self):
        self.normalizer = EndpointNormalizer()

    @pytest.mark.parametrize("endpoint, expected", [
        ("/api/users/42", "/api/users/:id"),
        ("/api/users/550e8400-e29b-41d4-a716-446655440000", "/api/users/:uuid"),
        ("/api/v2/orders", "/api/:version/orders"),
        ("/api/users/JohnDoe", "/api/users/:camelCase"),
        ("/api/user_profile", "/api/:key"),
        ("/blog/my-first-post", "/:identifier/:slug"),
        ("/files/report.pdf", "/:identifier/:path"),
        ("/api/users?page=2#top", "/api/users?:query#:fragment"),
        ("/api/users#section", "/api/users#:fragment"),
        ("/", "/"),
        ("", "/"),
    ])
    def test_normalize(self, endpoint, expected):
        assert self.normalizer.normalize(endpoint) == expected

    def test_static_segments_are_kept(self):
        assert self.normalizer.normalize("/api/auth/login") == "/api/auth/login"
        assert self.normalizer.normalize("/API/Users") == "/API/Users"

    def test_idempotent(self):
        for endpoint in ["/api/users/42", "/api/v1/items/abc-def?x=1", "/files/a.b.c"]:
            once = self.normalizer.normalize(endpoint)
            assert self.normalizer.normalize(once) == once

    def test_empty_segments_are_dropped(self):
        assert self.normalizer.normalize("//api///users/7/") == "/api/users/:id"

    def test_split_endpoint(self):
        assert EndpointNormalizer.split_endpoint("/a?b=1#c") == ("/a", "b=1", "c")
        assert EndpointNormalizer.split_endpoint("/a#c?d") == ("/a", None, "c?d")

    def test_analyze_patterns(self):
        endpoints = [
            "/api/users/1",
            "/api/users/2",
            "/api/items/550e8400-e29b-41d4-a716-446655440000",
            "/api/health",
        ]
        result = self.normalizer.analyze_patterns(endpoints)

        assert result.normalized_endpoints[0] == "/api/users/:id"
        assert result.pattern_distribution["numeric"] == 2
        assert result.pattern_distribution["uuid"] == 1
        assert result.pattern_distribution["unknown"] == 1
        assert result.pattern_distribution["versioned"] == 0
        assert result.most_common_pattern == "numeric"
        assert [p.pattern for p in result.detected_patterns] == ["uuid", "numeric"]

    def test_analyze_patterns_empty(self):
        result = self.normalizer.analyze_patterns([])
        assert result.normalized_endpoints == []
        assert result.most_common_pattern is None
