"""
Resource fetchers: the four catalog reads built on GraphQLClient and PageWalker
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config_loader import ConfigurationError, HarvesterConfig
from .fetch_result import FetchResult, HarvestError, ShapeMismatchError
from .graphql_queries import (
    build_collection_products_query,
    build_collections_query,
    build_product_query,
    build_publication_products_query,
)
from .http_client import GraphQLClient
from .id_normalizer import IdNormalizer
from .pagination import PageWalker, PaginationError
from .response_parser import (
    Connection,
    PathPart,
    items_from_connection,
    locate,
    next_cursor_from_connection,
    parse_connection,
)


logger = logging.getLogger(__name__)


def node_id(node: Dict[str, Any]) -> str:
    return IdNormalizer.normalize(node.get('id'))


def collection_record(node: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': IdNormalizer.normalize(node.get('id')),
        'title': node.get('title'),
        'handle': node.get('handle')
    }


def product_record(node: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': IdNormalizer.normalize(node.get('id')),
        'title': node.get('title'),
        'handle': node.get('handle'),
        'status': node.get('status'),
        'vendor': node.get('vendor'),
        'product_type': node.get('productType')
    }


@dataclass(frozen=True)
class ResourceSpec:
    """Where a resource's connection sits in the response and how to flatten its nodes"""
    name: str
    connection_path: Tuple[PathPart, ...]
    map_node: Callable[[Dict[str, Any]], Any]


COLLECTIONS = ResourceSpec(
    name='collections',
    connection_path=('data', 'collections'),
    map_node=collection_record
)

COLLECTION_PRODUCTS = ResourceSpec(
    name='collection_products',
    connection_path=('data', 'collections', 'edges', 0, 'node', 'products'),
    map_node=node_id
)

PUBLICATION_PRODUCTS = ResourceSpec(
    name='publication_products',
    connection_path=('data', 'publication', 'products'),
    map_node=node_id
)

PRODUCT_PATH = ('data', 'product')


class CatalogFetcher:
    """
    Fetches catalog resources and flattens them into id or record lists

    Every public method returns a FetchResult; transport and retry failures
    are reported as FAILED rather than raised.
    """

    def __init__(self, config: HarvesterConfig,
                 client: Optional[GraphQLClient] = None,
                 walker: Optional[PageWalker] = None):
        self.config = config
        self.client = client or GraphQLClient(config)
        self.walker = walker or PageWalker(config.max_pages)

    def fetch_collections(self) -> FetchResult:
        """All collections as {id, title, handle} records"""
        page_size = self.config.page_size('collections')
        return self._harvest(
            COLLECTIONS,
            lambda cursor: build_collections_query(page_size, cursor)
        )

    def fetch_collection_products(self, collection_id: str) -> FetchResult:
        """Local product ids of one collection, in collection order"""
        page_size = self.config.page_size('products')
        result = self._harvest(
            COLLECTION_PRODUCTS,
            lambda cursor: build_collection_products_query(collection_id, page_size, cursor)
        )
        logger.info(f"Found {len(result.items)} products for collection ID: {collection_id}")
        return result

    def fetch_publication_products(self, publication_id: Optional[str] = None) -> FetchResult:
        """
        Local product ids published to a publication

        Falls back to the configured target publication.

        Raises:
            ConfigurationError: If no publication id is given or configured
        """
        publication_id = publication_id or self.config.target_publication_id
        if not publication_id:
            raise ConfigurationError("No publication id given and no target_publication_id configured")

        page_size = self.config.page_size('publication_products')
        return self._harvest(
            PUBLICATION_PRODUCTS,
            lambda cursor: build_publication_products_query(publication_id, page_size, cursor)
        )

    def fetch_product(self, product_id: str) -> FetchResult:
        """A single product record; EMPTY when the product does not exist"""
        try:
            response = self.client.send(build_product_query(product_id))
        except HarvestError as e:
            logger.error(f"Fetching product {product_id} failed: {e}")
            return FetchResult.failed(e)

        data = locate(response.raw_data, ('data',))
        if isinstance(data, dict) and 'product' in data and data['product'] is None:
            logger.info(f"Product {product_id} was not found")
            return FetchResult.from_items([])

        node = locate(response.raw_data, PRODUCT_PATH)
        if not isinstance(node, dict):
            return self._shape_mismatch('product', PRODUCT_PATH, [])

        return FetchResult.from_items([product_record(node)])

    def _harvest(self, resource: ResourceSpec,
                 build_query: Callable[[Optional[str]], str]) -> FetchResult:
        collected: List[Any] = []
        shape_mismatched = False

        def fetch_page(cursor: Optional[str]) -> Optional[Connection]:
            nonlocal shape_mismatched
            response = self.client.send(build_query(cursor))
            connection = parse_connection(response.raw_data, resource.connection_path)
            if connection is None:
                shape_mismatched = True
            return connection

        def extract_items(connection: Optional[Connection]) -> List[Any]:
            page_items = items_from_connection(connection, resource.map_node)
            collected.extend(page_items)
            return page_items

        def extract_next_cursor(connection: Optional[Connection]) -> Optional[str]:
            cursor = next_cursor_from_connection(connection)
            if cursor is None and connection is not None and connection.page_info.has_next_page:
                raise PaginationError(
                    f"API indicates more {resource.name} pages (hasNextPage) without cursor"
                )
            return cursor

        try:
            items = self.walker.walk_pages(None, fetch_page, extract_items, extract_next_cursor)
        except HarvestError as e:
            logger.error(f"Fetching {resource.name} failed after {len(collected)} items: {e}")
            return FetchResult.failed(e, collected)

        if shape_mismatched:
            return self._shape_mismatch(resource.name, resource.connection_path, items)

        logger.debug(f"FOUND {len(items)} {resource.name}.")
        return FetchResult.from_items(items)

    def _shape_mismatch(self, resource_name: str, path: Tuple[PathPart, ...],
                        items: List[Any]) -> FetchResult:
        error = ShapeMismatchError(resource_name, path)
        if self.config.strict_shape_validation:
            logger.error(str(error))
            return FetchResult.failed(error, items)

        logger.warning(f"{error}; treating as no further items")
        return FetchResult.from_items(items)
