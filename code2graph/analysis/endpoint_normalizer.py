"""
Canonicalises endpoint paths so structurally equivalent paths compare equal.
"""
import re
from typing import Dict, List, Optional, Tuple

from ..types import PatternAnalysisResult, PatternInfo
from ..utils.logger import app_logger


STATIC_SEGMENTS = {
    'api', 'users', 'user', 'posts', 'post', 'comments', 'comment',
    'orders', 'order', 'clubs', 'club', 'persons', 'person', 'health', 'status',
    'auth', 'login', 'logout', 'register', 'profile', 'settings', 'admin',
    'public', 'private', 'internal', 'external', 'data', 'info', 'details',
    'list', 'create', 'update', 'delete', 'get', 'put', 'patch',
}

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
UUID_SEARCH_PATTERN = re.compile(r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)

# Order matters: earlier rules win
SEGMENT_RULES: List[Tuple[re.Pattern, str]] = [
    (UUID_PATTERN, ":uuid"),
    (re.compile(r"^v\d+(\.\d+)*$", re.IGNORECASE), ":version"),
    (re.compile(r"^\d+$"), ":id"),
    (re.compile(r"^[A-Z][a-zA-Z0-9]*$"), ":camelCase"),
    (re.compile(r"^[a-zA-Z0-9]+(\.[a-zA-Z0-9]+)+$"), ":path"),
    (re.compile(r"^[a-zA-Z0-9]+(_[a-zA-Z0-9]+)+$"), ":key"),
    (re.compile(r"^[a-z0-9]+(-[a-z0-9]+)+$"), ":slug"),
    (re.compile(r"^[a-zA-Z0-9-]+$"), ":identifier"),
]

PATTERN_TYPES = [
    "uuid", "numeric", "alphanumeric", "hyphenated", "underscore", "dot-separated",
    "mixed-case", "query-param", "fragment", "versioned", "nested", "unknown",
]


class EndpointNormalizer:
    """Converts concrete endpoint paths into parameterised canonical forms."""

    def __init__(self):
        self.logger = app_logger.bind(component="endpoint_normalizer")

    @staticmethod
    def split_endpoint(endpoint: str) -> Tuple[str, Optional[str], Optional[str]]:
        """Split into (path, query, fragment)."""
        path_part = endpoint
        query_part = None
        fragment_part = None

        fragment_index = endpoint.find("#")
        if fragment_index != -1:
            fragment_part = endpoint[fragment_index + 1:]
            path_part = endpoint[:fragment_index]

        query_index = path_part.find("?")
        if query_index != -1:
            query_part = path_part[query_index + 1:]
            path_part = path_part[:query_index]

        return path_part, query_part, fragment_part

    @staticmethod
    def is_static_segment(segment: str) -> bool:
        return segment.lower() in STATIC_SEGMENTS

    def normalize_segment(self, segment: str) -> str:
        if segment.startswith(":"):
            return segment
        if self.is_static_segment(segment):
            return segment
        for pattern, replacement in SEGMENT_RULES:
            if pattern.match(segment):
                return replacement
        return segment

    def normalize(self, endpoint: str) -> str:
        """Normalize a single endpoint path.

        Example:
            >>> EndpointNormalizer().normalize("/api/users/42?page=2")
            '/api/users/:id?:query'
        """
        path_part, query_part, fragment_part = self.split_endpoint(endpoint)
        segments = [segment for segment in path_part.split("/") if segment]
        normalized = "/" + "/".join(self.normalize_segment(segment) for segment in segments)

        if query_part:
            normalized += "?:query"
        if fragment_part:
            normalized += "#:fragment"
        return normalized

    def normalize_all(self, endpoints: List[str]) -> List[str]:
        return [self.normalize(endpoint) for endpoint in endpoints]

    def analyze_patterns(self, endpoints: List[str]) -> PatternAnalysisResult:
        """Summarise which parameter patterns appear in a set of endpoints."""
        normalized = self.normalize_all(endpoints)
        distribution: Dict[str, int] = {pattern: 0 for pattern in PATTERN_TYPES}

        for endpoint in endpoints:
            if "uuid" in endpoint or UUID_SEARCH_PATTERN.search(endpoint):
                distribution["uuid"] += 1
            elif re.search(r"\d+", endpoint):
                distribution["numeric"] += 1
            else:
                distribution["unknown"] += 1

        detected: List[PatternInfo] = []
        if distribution["uuid"] > 0:
            detected.append(PatternInfo(
                pattern="uuid",
                regex=UUID_SEARCH_PATTERN.pattern,
                parameter_name="uuid",
                confidence=0.95,
                examples=[e for e in endpoints if UUID_SEARCH_PATTERN.search(e)][:3],
                frequency=distribution["uuid"],
            ))
        if distribution["numeric"] > 0:
            detected.append(PatternInfo(
                pattern="numeric",
                regex=r"/\d+",
                parameter_name="id",
                confidence=0.8,
                examples=[e for e in endpoints if re.search(r"\d+", e)][:3],
                frequency=distribution["numeric"],
            ))

        most_common: Optional[PatternInfo] = None
        for info in detected:
            if most_common is None or info.frequency >= most_common.frequency:
                most_common = info

        self.logger.info(
            f"Endpoint pattern analysis: {len(endpoints)} endpoints, "
            f"{len(set(normalized))} unique normalized, most common: {most_common.pattern if most_common else None}"
        )

        return PatternAnalysisResult(
            normalized_endpoints=normalized,
            pattern_distribution=distribution,
            detected_patterns=detected,
            most_common_pattern=most_common.pattern if most_common else None,
        )
