"""vodbot.gql – query transport and composite-query builder for Twitch GQL.

A *wave* is one HTTP round-trip carrying many aliased root fields, e.g.

    query {
      _vodbot_fti: user(login: "vodbot_fti") { videos(first: 100) { ... } }
      _1818343419: video(id: "1818343419") { moments(first: 100) { ... } }
    }

Queries are assembled from typed :class:`Fragment` values rather than string
formatting, so caller-supplied keys never end up unescaped in the query text.
"""

from __future__ import annotations

import json
import logging
import re
import secrets
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Sequence, Union

import requests

from .constants import GQL_URL
from .errors import ResponseShapeError, TransportError
from .user_agent import pick_user_agent

logger = logging.getLogger(__name__)

__all__ = [
    "DeviceId",
    "GqlEnum",
    "Field",
    "Fragment",
    "AliasTable",
    "render_value",
    "compose",
    "GQLClient",
]


# ---------------------------------------------------------------------------
# Device identity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DeviceId:
    """Random per-process device identifier sent as ``X-Device-Id``."""

    value: str

    @classmethod
    def generate(cls) -> "DeviceId":
        return cls(secrets.token_hex(16))

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Query building
# ---------------------------------------------------------------------------

class GqlEnum(str):
    """Marks a string argument that must be rendered bare (``sort: TIME``)."""

    __slots__ = ()


_NAME_RE = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")


def render_value(value: Any) -> str:
    """Render a Python value as a GraphQL literal."""
    if isinstance(value, GqlEnum):
        if not _NAME_RE.match(value):
            raise ValueError(f"invalid enum value {value!r}")
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        # JSON string escaping is a valid GraphQL string literal
        return json.dumps(value)
    if isinstance(value, Mapping):
        return "{" + _render_arguments(value) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_value(v) for v in value) + "]"
    raise TypeError(f"cannot render {type(value).__name__} as a GraphQL value")


def _render_arguments(args: Mapping[str, Any]) -> str:
    parts = []
    for name, value in args.items():
        if value is None:
            continue
        if not _NAME_RE.match(name):
            raise ValueError(f"invalid argument name {name!r}")
        parts.append(f"{name}: {render_value(value)}")
    return ", ".join(parts)


Selection = Union[str, "Field", Sequence[Union[str, "Field"]]]


def _render_selection(selection: Selection) -> str:
    if isinstance(selection, str):
        return " ".join(selection.split())
    if isinstance(selection, Field):
        return selection.render()
    return " ".join(p for p in (_render_selection(s) for s in selection) if p)


@dataclass(frozen=True)
class Field:
    """A (possibly nested) field: ``name(args) { selection }``.

    Plain strings in a selection are static sub-selections owned by this
    package; anything caller-supplied goes through ``arguments``.
    """

    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)
    selection: Selection = ""

    def render(self) -> str:
        if not _NAME_RE.match(self.name):
            raise ValueError(f"invalid field name {self.name!r}")
        out = self.name
        args = _render_arguments(self.arguments)
        if args:
            out += f"({args})"
        body = _render_selection(self.selection)
        if body:
            out += " { " + body + " }"
        return out


@dataclass(frozen=True)
class Fragment:
    """One aliased root field of a composite query."""

    alias: str
    field: str
    arguments: Mapping[str, Any] = field(default_factory=dict)
    selection: Selection = ""

    def render(self) -> str:
        if not _NAME_RE.match(self.alias):
            raise ValueError(f"invalid alias {self.alias!r}")
        return f"{self.alias}: " + Field(self.field, self.arguments, self.selection).render()


def compose(fragments: Iterable[Fragment]) -> str:
    """Return the composite query text for *fragments*."""
    body = "\n  ".join(f.render() for f in fragments)
    return "query {\n  " + body + "\n}"


class AliasTable:
    """Explicit bidirectional map between entity keys and query aliases.

    GraphQL aliases must match ``[_A-Za-z][_0-9A-Za-z]*``: video ids start
    with a digit and clip slugs contain hyphens, so every key is prefixed with
    ``_`` and has illegal characters replaced by ``_``.  Distinct keys that
    sanitise to the same alias get a numeric suffix.
    """

    _BAD = re.compile(r"[^0-9A-Za-z_]")

    def __init__(self, keys: Iterable[str] = ()):
        self._by_key: dict[str, str] = {}
        self._by_alias: dict[str, str] = {}
        for key in keys:
            self.add(key)

    def add(self, key: str) -> str:
        if key in self._by_key:
            return self._by_key[key]
        base = "_" + self._BAD.sub("_", key)
        alias = base
        n = 1
        while alias in self._by_alias:
            alias = f"{base}__{n}"
            n += 1
        self._by_key[key] = alias
        self._by_alias[alias] = key
        return alias

    def alias(self, key: str) -> str:
        return self._by_key[key]

    def key(self, alias: str) -> str:
        return self._by_alias[alias]

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_key)

    def __len__(self) -> int:
        return len(self._by_key)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class GQLClient:
    """Thin wrapper that POSTs query text to the GQL endpoint."""

    def __init__(
        self,
        client_id: str,
        device_id: DeviceId,
        *,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        url: str = GQL_URL,
    ):
        self.client_id = client_id
        self.device_id = device_id
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": pick_user_agent()})

    @property
    def headers(self) -> dict[str, str]:
        return {"Client-ID": self.client_id, "X-Device-Id": str(self.device_id)}

    def send(self, query: str) -> dict[str, Any]:
        """POST *query* and return the decoded ``{"errors"?, "data"?}`` body.

        Application-level ``errors`` are returned untouched; interpreting
        them is the caller's job.
        """
        logger.debug("GQL request (%d chars)", len(query))
        try:
            resp = self.session.post(
                self.url,
                json={"query": query},
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise TransportError(f'Cannot connect to Twitch, reason: "{exc}".') from exc

        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f'Error response from Twitch GQL ({resp.status_code}): "{resp.text}".',
                status=resp.status_code,
                body=resp.text,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ResponseShapeError(
                f'Failed to parse response from Twitch, reason: "{exc}".'
            ) from exc
        if not isinstance(payload, dict):
            raise ResponseShapeError("Failed to parse response from Twitch, not a JSON object.")
        return payload

    def query(self, fragments: Iterable[Fragment]) -> dict[str, Any]:
        return self.send(compose(fragments))
