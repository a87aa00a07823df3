import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from .remote_api import RemoteResourceApi, ScopeConnector


@dataclass(frozen=True)
class ActiveScope:
    """A selected subscription and the API handle bound to it."""
    scope_id: str
    api: RemoteResourceApi


def open_scope(connector: ScopeConnector, scope_id: str) -> ActiveScope:
    api = connector.select_scope(scope_id)
    logging.info(f"[SCOPE] Active subscription is now {scope_id}")
    return ActiveScope(scope_id=scope_id, api=api)


@contextmanager
def with_scope(connector: ScopeConnector, scope_id: str) -> Iterator[ActiveScope]:
    scope = open_scope(connector, scope_id)
    try:
        yield scope
    finally:
        scope.api.close()
