"""
Usage tracking, endpoint normalization and frontend/backend connection analysis.
"""

from .endpoint_normalizer import EndpointNormalizer
from .usage_tracker import UsageTracker
from .connection_mapper import ConnectionMapper
from .api_endpoint_analyzer import ApiEndpointAnalyzer
from .storage_analyzer import StorageAnalyzer

__all__ = [
    'EndpointNormalizer',
    'UsageTracker',
    'ConnectionMapper',
    'ApiEndpointAnalyzer',
    'StorageAnalyzer',
]
