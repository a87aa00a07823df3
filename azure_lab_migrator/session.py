"""
Session hand-off from the orchestrator to worker threads.

The exported form is an in-memory capability (an ARM token snapshot for the Azure
connector), shared read-only by every worker and wiped when the run ends.
"""
import logging
import threading
import time
from typing import Any, Optional

from .exceptions import AccessDenied, CleanupFailed
from .remote_api import RemoteResourceApi, ScopeConnector
from .scope import ActiveScope


class SessionArtifact:

    def __init__(self, connector: ScopeConnector, scope_id: str, exported_form: Any,
                 expires_at: Optional[float] = None):
        self._connector = connector
        self._scope_id = scope_id
        self._exported_form = exported_form
        self._expires_at = expires_at
        self._lock = threading.Lock()

    @property
    def scope_id(self) -> str:
        return self._scope_id

    @property
    def expires_at(self) -> Optional[float]:
        return self._expires_at

    @property
    def destroyed(self) -> bool:
        return self._exported_form is None

    def expired(self, now: Optional[float] = None) -> bool:
        if self._expires_at is None:
            return False
        return (now if now is not None else time.time()) >= self._expires_at

    def open(self) -> RemoteResourceApi:
        """Import the session, giving an API handle bound to the exporting subscription."""
        form = self._exported_form
        if form is None:
            raise AccessDenied(self._scope_id, "session artifact was destroyed")
        if self.expired():
            raise AccessDenied(self._scope_id, "session artifact has expired")
        return self._connector.import_session(self._scope_id, form)

    def destroy(self) -> None:
        with self._lock:
            form, self._exported_form = self._exported_form, None
        if form is None:
            return
        try:
            self._connector.revoke_session(form)
        except Exception as e:
            raise CleanupFailed(f"Could not revoke session for {self._scope_id}: {e}") from e
        logging.info(f"[SESSION] Destroyed session for subscription {self._scope_id}")


def export_current_session(connector: ScopeConnector, scope: ActiveScope) -> SessionArtifact:
    exported_form, expires_at = connector.export_session(scope.api)
    logging.info(f"[SESSION] Exported session for subscription {scope.scope_id}")
    return SessionArtifact(connector, scope.scope_id, exported_form, expires_at)


def import_session(artifact: SessionArtifact) -> RemoteResourceApi:
    return artifact.open()


def destroy(artifact: Optional[SessionArtifact]) -> None:
    if artifact is not None:
        artifact.destroy()
