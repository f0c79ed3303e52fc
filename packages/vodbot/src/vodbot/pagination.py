"""vodbot.pagination – drive many independently paginated lists to completion.

Every *wave* is one composite request holding a fragment for each entity
that still has pages left. Entities finish independently: a channel with
one page of clips drops out after wave 1 while a channel with five pages
keeps going.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Mapping, TypeVar

from .errors import ApplicationError, ResponseShapeError
from .gql import AliasTable, Field, Fragment, GQLClient

logger = logging.getLogger(__name__)

__all__ = ["PageCursor", "ListQuery", "ConnectionQuery", "paginate", "fetch_nodes"]

R = TypeVar("R")
Node = Mapping[str, Any]

# consecutive "more pages, same cursor" answers before an entity is abandoned
MAX_STALLS = 2


@dataclass
class PageCursor:
    has_more: bool = True
    cursor: str = ""
    stalls: int = 0
    pages: int = 0


class ListQuery(abc.ABC, Generic[R]):
    """Capability interface for one kind of paginated list."""

    @abc.abstractmethod
    def fragment(self, alias: str, key: str, cursor: str) -> Fragment:
        """Return the fragment fetching the page after *cursor* for *key*."""

    @abc.abstractmethod
    def has_next_page(self, node: Node) -> bool: ...

    @abc.abstractmethod
    def cursor(self, node: Node) -> str: ...

    @abc.abstractmethod
    def extract(self, key: str, node: Node) -> list[R]: ...


class ConnectionQuery(ListQuery[R]):
    """A :class:`ListQuery` over a Relay-style connection (``edges``/``pageInfo``).

    Subclasses name the root field and its selection, locate the connection
    inside the root node, and map one edge node to a record.
    """

    root_field: str = ""
    root_argument: str = ""

    @abc.abstractmethod
    def connection_arguments(self, cursor: str) -> dict[str, Any]: ...

    @abc.abstractmethod
    def connection_field(self) -> str: ...

    @abc.abstractmethod
    def node_selection(self) -> str: ...

    @abc.abstractmethod
    def record(self, key: str, root: Node, node: Node) -> R: ...

    def root_selection(self) -> str:
        return ""

    def fragment(self, alias: str, key: str, cursor: str) -> Fragment:
        connection = Field(
            self.connection_field(),
            self.connection_arguments(cursor),
            (
                "pageInfo { hasNextPage }",
                Field("edges", selection=("cursor", Field("node", selection=self.node_selection()))),
            ),
        )
        return Fragment(
            alias,
            self.root_field,
            {self.root_argument: key},
            (self.root_selection(), connection),
        )

    def connection(self, node: Node) -> Node:
        conn = node.get(self.connection_field())
        return conn if isinstance(conn, Mapping) else {}

    def _edges(self, node: Node) -> list[Node]:
        edges = self.connection(node).get("edges") or []
        return [e for e in edges if isinstance(e, Mapping)]

    def has_next_page(self, node: Node) -> bool:
        info = self.connection(node).get("pageInfo") or {}
        return bool(info.get("hasNextPage")) and bool(self._edges(node))

    def cursor(self, node: Node) -> str:
        edges = self._edges(node)
        return (edges[-1].get("cursor") or "") if edges else ""

    def extract(self, key: str, node: Node) -> list[R]:
        return [
            self.record(key, node, e["node"])
            for e in self._edges(node)
            if isinstance(e.get("node"), Mapping)
        ]


def _data(response: Mapping[str, Any]) -> Mapping[str, Any]:
    errors = response.get("errors") or []
    data = response.get("data")
    if errors and not data:
        raise ApplicationError(list(errors))
    if errors:
        logger.warning(
            "GQL returned %d error(s) alongside data: %s",
            len(errors),
            "; ".join(str(e.get("message", e)) for e in errors),
        )
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ResponseShapeError("GQL response 'data' is not an object")
    return data


def paginate(client: GQLClient, keys: Iterable[str], query: ListQuery[R]) -> dict[str, list[R]]:
    """Fetch every page of *query* for every key, batching all keys per wave.

    Returns ``{key: records}`` with each list in first-page-to-last-page
    order. An entity whose root node comes back ``null`` is treated as
    exhausted.
    """
    aliases = AliasTable(keys)
    cursors = {key: PageCursor() for key in aliases}
    results: dict[str, list[R]] = {key: [] for key in aliases}

    wave = 0
    while True:
        pending = [key for key, c in cursors.items() if c.has_more]
        if not pending:
            break
        wave += 1
        logger.debug("wave %d: %d entities (%s)", wave, len(pending), type(query).__name__)
        data = _data(
            client.query(
                query.fragment(aliases.alias(key), key, cursors[key].cursor)
                for key in pending
            )
        )

        for key in pending:
            state = cursors[key]
            node = data.get(aliases.alias(key))
            if not isinstance(node, Mapping):
                # indistinguishable from a transient null; treat as the end
                if state.cursor:
                    logger.debug("%s: null node after cursor %r, stopping", key, state.cursor)
                state.has_more = False
                continue

            more = query.has_next_page(node)
            new_cursor = query.cursor(node)
            stalled = more and (not new_cursor or new_cursor == state.cursor)
            # a page that points back at itself is only collected the first time
            if not stalled or not state.pages:
                results[key].extend(query.extract(key, node))
            state.pages += 1
            if stalled:
                state.stalls += 1
                if state.stalls >= MAX_STALLS:
                    logger.warning(
                        "%s: no cursor progress after %d waves, giving up on further pages",
                        key,
                        state.stalls,
                    )
                    more = False
            else:
                state.stalls = 0
            state.has_more = more
            if new_cursor:
                state.cursor = new_cursor

    return results


def fetch_nodes(
    client: GQLClient,
    keys: Iterable[str],
    fragment: Callable[[str, str], Fragment],
) -> dict[str, Node | None]:
    """One batched wave of non-paginated lookups: ``{key: node-or-None}``."""
    aliases = AliasTable(keys)
    if not len(aliases):
        return {}
    data = _data(client.query(fragment(aliases.alias(key), key) for key in aliases))
    out: dict[str, Node | None] = {}
    for key in aliases:
        node = data.get(aliases.alias(key))
        out[key] = node if isinstance(node, Mapping) else None
    return out
