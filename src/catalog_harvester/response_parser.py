"""
Response parser for locating and flattening GraphQL connection structures
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union


PathPart = Union[str, int]


@dataclass(frozen=True)
class Edge:
    """A single paginated item: its cursor and payload node"""
    cursor: Optional[str]
    node: Dict[str, Any]


@dataclass(frozen=True)
class PageInfo:
    has_next_page: bool = False


@dataclass(frozen=True)
class Connection:
    """Typed view of a GraphQL `{ pageInfo, edges }` connection"""
    edges: List[Edge] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)

    @property
    def last_cursor(self) -> Optional[str]:
        return self.edges[-1].cursor if self.edges else None


def locate(payload: Any, path: Sequence[PathPart]) -> Any:
    """
    Follow a path of dict keys and list indexes

    Returns:
        The value at the path, or None if any step is missing or of the wrong type
    """
    current = payload
    for part in path:
        if isinstance(part, int):
            if not isinstance(current, list) or not -len(current) <= part < len(current):
                return None
            current = current[part]
        else:
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
    return current


def parse_connection(payload: Any, path: Sequence[PathPart]) -> Optional[Connection]:
    """
    Parse the connection found at `path` into a Connection

    Returns:
        Connection, or None when the response does not have the expected shape
    """
    raw = locate(payload, path)
    if not isinstance(raw, dict):
        return None

    raw_edges = raw.get('edges')
    if not isinstance(raw_edges, list):
        return None

    edges = []
    for raw_edge in raw_edges:
        if not isinstance(raw_edge, dict) or not isinstance(raw_edge.get('node'), dict):
            return None
        edges.append(Edge(cursor=raw_edge.get('cursor'), node=raw_edge['node']))

    raw_page_info = raw.get('pageInfo')
    has_next_page = isinstance(raw_page_info, dict) and raw_page_info.get('hasNextPage') is True

    return Connection(edges=edges, page_info=PageInfo(has_next_page=has_next_page))


def items_from_connection(connection: Optional[Connection],
                          map_node: Callable[[Dict[str, Any]], Any]) -> List[Any]:
    """Map each edge node in order; a missing connection yields no items"""
    if connection is None:
        return []
    return [map_node(edge.node) for edge in connection.edges]


def next_cursor_from_connection(connection: Optional[Connection]) -> Optional[str]:
    """Cursor of the last edge when the server reports another page"""
    if connection is None or not connection.page_info.has_next_page:
        return None
    return connection.last_cursor
