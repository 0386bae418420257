"""
Catalog harvester package for Shopify-style GraphQL Admin APIs
Provides paginated, rate-limit aware retrieval of collections and products
"""

from .config_loader import (
    ConfigLoader, ConfigurationError, MissingEnvironmentError,
    HarvesterConfig, RateLimitConfig, RetryConfig
)
from .fetch_result import FetchResult, FetchOutcome, HarvestError, ShapeMismatchError
from .id_normalizer import IdNormalizer
from .cost_governor import CostGovernor
from .http_client import (
    GraphQLClient, APIResponse, RetryExhaustedError, UnclassifiedHTTPError, TransportError
)
from .pagination import PageWalker, PaginationError
from .resource_fetchers import CatalogFetcher, ResourceSpec
from .logging_config import configure_logging

__all__ = [
    'ConfigLoader',
    'ConfigurationError',
    'MissingEnvironmentError',
    'HarvesterConfig',
    'RateLimitConfig',
    'RetryConfig',
    'FetchResult',
    'FetchOutcome',
    'HarvestError',
    'ShapeMismatchError',
    'IdNormalizer',
    'CostGovernor',
    'GraphQLClient',
    'APIResponse',
    'RetryExhaustedError',
    'UnclassifiedHTTPError',
    'TransportError',
    'PageWalker',
    'PaginationError',
    'CatalogFetcher',
    'ResourceSpec',
    'configure_logging'
]
