"""
Cross-subscription lab VM migration.

Validates both labs, resolves the VMs to copy, exports the destination session once
and imports every VM in parallel, one worker thread per VM. The exported session is
destroyed on every exit path once it exists.
"""
import logging
import os
import threading
from concurrent.futures import Future, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from enum import Enum
from typing import Callable, Dict, List, Optional

from .exceptions import CleanupFailed
from .models import MigrationOutcome, MigrationReport, MigrationRequest, MigrationTask
from .remote_api import ScopeConnector
from .resolver import ResourceResolver
from .session import SessionArtifact, destroy, export_current_session
from .validator import ScopeValidator, ValidatedScopes
from .worker import MigrationWorker, outcome_for

_timeout_env = os.getenv("MIGRATION_WAIT_TIMEOUT_SECONDS")
DEFAULT_WAIT_TIMEOUT = float(_timeout_env) if _timeout_env else None


def _start_worker(worker: MigrationWorker, task: MigrationTask, name: str) -> Future:
    """Run one worker on a daemon thread and expose its result as a Future."""
    future: Future = Future()

    def target() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(worker.run(task))
        except BaseException as e:
            future.set_exception(e)

    threading.Thread(target=target, name=name, daemon=True).start()
    return future


class OrchestrationState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    RESOLVING = "resolving"
    EXPORTING = "exporting"
    DISPATCHING = "dispatching"
    AWAITING = "awaiting"
    REPORTING = "reporting"
    CLEANING_UP = "cleaning_up"
    DONE = "done"


class MigrationOrchestrator:

    def __init__(self, connector: ScopeConnector, wait_timeout: Optional[float] = DEFAULT_WAIT_TIMEOUT):
        self.connector = connector
        self.wait_timeout = wait_timeout
        self.validator = ScopeValidator(connector)
        self.resolver = ResourceResolver()
        self.state = OrchestrationState.IDLE
        self.tasks: List[MigrationTask] = []

    def _enter(self, state: OrchestrationState) -> None:
        logging.debug(f"[MIGRATE] {self.state.value} -> {state.value}")
        self.state = state

    def _validate(self, request: MigrationRequest) -> ValidatedScopes:
        self._enter(OrchestrationState.VALIDATING)
        return self.validator.validate(
            source_scope_id=request.source_subscription_id,
            source_lab_name=request.source_lab_name,
            source_vm_name=request.source_vm_name,
            destination_scope_id=request.destination_subscription_id,
            destination_lab_name=request.destination_lab_name,
            destination_vm_name=request.destination_vm_name,
        )

    def _resolve(self, scopes: ValidatedScopes, request: MigrationRequest) -> List[MigrationTask]:
        self._enter(OrchestrationState.RESOLVING)
        machines = self.resolver.resolve(scopes.source_scope, scopes.source_lab, request.source_vm_name)
        # a rename only makes sense for a single VM
        rename = request.destination_vm_name if len(machines) == 1 else None
        return [
            MigrationTask(source_machine=m, destination_lab=scopes.destination_lab, destination_name=rename)
            for m in machines
        ]

    def plan(self, request: MigrationRequest) -> List[MigrationTask]:
        """Validate and resolve only. Nothing is exported or dispatched."""
        try:
            scopes = self._validate(request)
            try:
                self.tasks = self._resolve(scopes, request)
            finally:
                scopes.close()
            return self.tasks
        finally:
            self._enter(OrchestrationState.DONE)

    def run(self, request: MigrationRequest,
            on_outcome: Optional[Callable[[MigrationOutcome], None]] = None) -> MigrationReport:
        """
        Migrate the requested VMs. Validation and resolution errors propagate before any
        session is exported; per-VM failures come back as failed outcomes in the report.
        """
        try:
            scopes = self._validate(request)
            artifact = None
            try:
                self.tasks = self._resolve(scopes, request)

                self._enter(OrchestrationState.EXPORTING)
                artifact = export_current_session(self.connector, scopes.destination_scope)

                outcomes = self._dispatch(self.tasks, artifact, on_outcome)

                self._enter(OrchestrationState.REPORTING)
                report = MigrationReport(outcomes=outcomes)
                failed = [o for o in outcomes if not o.succeeded]
                logging.info(f"[MIGRATE] {len(outcomes) - len(failed)}/{len(outcomes)} VMs imported "
                             f"into {scopes.destination_lab.lab_name}")
                return report
            finally:
                self._enter(OrchestrationState.CLEANING_UP)
                self._cleanup(artifact)
                scopes.close()
        finally:
            self._enter(OrchestrationState.DONE)

    def _dispatch(self, tasks: List[MigrationTask], artifact: SessionArtifact,
                  on_outcome: Optional[Callable[[MigrationOutcome], None]]) -> List[MigrationOutcome]:
        if not tasks:
            logging.info("[MIGRATE] Source lab has no VMs, nothing to import")
            return []

        self._enter(OrchestrationState.DISPATCHING)
        worker = MigrationWorker(artifact)
        outcomes: List[MigrationOutcome] = []

        def collect(outcome: MigrationOutcome) -> None:
            outcomes.append(outcome)
            if outcome.succeeded:
                logging.info(f"[MIGRATE] {outcome.describe()}")
            else:
                logging.error(f"[MIGRATE] {outcome.describe()}")
            if on_outcome:
                on_outcome(outcome)

        futures: Dict[Future, MigrationTask] = {
            _start_worker(worker, t, f"lab-migrate_{i}"): t for i, t in enumerate(tasks)
        }
        pending = set(futures)

        self._enter(OrchestrationState.AWAITING)
        try:
            for future in as_completed(futures, timeout=self.wait_timeout):
                pending.discard(future)
                collect(self._result(future, futures[future]))
        except FuturesTimeoutError:
            # stuck daemon threads are abandoned, they do not hold up interpreter exit
            logging.warning(f"[MIGRATE] {len(pending)} imports still running after {self.wait_timeout}s")
            for future in pending:
                if future.done():
                    collect(self._result(future, futures[future]))
                else:
                    future.cancel()
                    collect(outcome_for(futures[future], error=f"timed out after {self.wait_timeout}s"))

        return outcomes

    @staticmethod
    def _result(future: Future, task: MigrationTask) -> MigrationOutcome:
        try:
            return future.result()
        except Exception as e:
            return outcome_for(task, error=f"worker crashed: {e}")

    @staticmethod
    def _cleanup(artifact: Optional[SessionArtifact]) -> None:
        try:
            destroy(artifact)
        except CleanupFailed as e:
            logging.warning(f"[SESSION] {e}")
