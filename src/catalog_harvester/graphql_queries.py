"""
GraphQL query templates for the catalog resources harvested from the Admin API.

Each template is plain text with str.format placeholders; the request body is
the raw query (Content-Type: application/graphql), not a JSON envelope. The
`after` placeholder is either empty or `, after: "<cursor>"` so the first page
is requested without a cursor.

Resources:
  - collections: every collection with id, title and handle
  - collection products: product ids of one collection, in collection order
  - publication products: product ids published to one publication (channel)
  - product: a single product record, not paginated
"""

from typing import Optional

from .id_normalizer import IdNormalizer


COLLECTIONS_QUERY = """
{{
  collections(first: {page_size}{after}) {{
    pageInfo {{
      hasNextPage
    }}
    edges {{
      cursor
      node {{
        id
        title
        handle
      }}
    }}
  }}
}}
"""

COLLECTION_PRODUCTS_QUERY = """
{{
  collections(first: 1, query: "id:{collection_id}") {{
    pageInfo {{
      hasNextPage
    }}
    edges {{
      node {{
        id
        products(first: {page_size}, sortKey: COLLECTION_DEFAULT{after}) {{
          pageInfo {{
            hasNextPage
          }}
          edges {{
            cursor
            node {{
              id
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""

PUBLICATION_PRODUCTS_QUERY = """
{{
  publication(id: "{publication_id}") {{
    id
    products(first: {page_size}{after}) {{
      pageInfo {{
        hasNextPage
      }}
      edges {{
        cursor
        node {{
          id
        }}
      }}
    }}
  }}
}}
"""

PRODUCT_QUERY = """
{{
  product(id: "{product_id}") {{
    id
    title
    handle
    status
    vendor
    productType
  }}
}}
"""


def _escape(value: str) -> str:
    """Escape a value for a double-quoted GraphQL string literal"""
    return str(value).replace('\\', '\\\\').replace('"', '\\"')


def _after_clause(cursor: Optional[str]) -> str:
    # Cursor comes from the last edge of the previous page
    if not cursor:
        return ''
    return f', after: "{_escape(cursor)}"'


def build_collections_query(page_size: int, cursor: Optional[str] = None) -> str:
    return COLLECTIONS_QUERY.format(page_size=page_size, after=_after_clause(cursor))


def build_collection_products_query(collection_id: str, page_size: int,
                                    cursor: Optional[str] = None) -> str:
    """The collection search filter takes the local numeric id"""
    return COLLECTION_PRODUCTS_QUERY.format(
        collection_id=_escape(IdNormalizer.normalize(str(collection_id))),
        page_size=page_size,
        after=_after_clause(cursor)
    )


def build_publication_products_query(publication_id: str, page_size: int,
                                     cursor: Optional[str] = None) -> str:
    return PUBLICATION_PRODUCTS_QUERY.format(
        publication_id=_escape(IdNormalizer.to_global_id('Publication', publication_id)),
        page_size=page_size,
        after=_after_clause(cursor)
    )


def build_product_query(product_id: str) -> str:
    return PRODUCT_QUERY.format(product_id=_escape(IdNormalizer.to_global_id('Product', product_id)))
