"""Per-request resolver context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .datasources import DataSource, DataSources
from .logging import generate_request_id, get_request_id


@dataclass(frozen=True)
class RequestContext:
    """Everything a resolver may touch while handling one request.

    The adapters are shared, long-lived objects; the context itself is built
    fresh for every request and never reused.
    """

    users: DataSource
    messages: DataSource
    request_id: str
    # No authentication exists yet, so there is never a principal
    principal: Any = None


class ContextFactory:
    """Builds a :class:`RequestContext` per inbound request."""

    def __init__(self, sources: DataSources):
        self._sources = sources

    def build(self, raw_request: Any = None) -> RequestContext:
        _ = raw_request
        return RequestContext(
            users=self._sources.users,
            messages=self._sources.messages,
            request_id=get_request_id() or generate_request_id(),
        )
