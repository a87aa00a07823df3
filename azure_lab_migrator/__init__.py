from .exceptions import AccessDenied, CleanupFailed, InvalidArgument, LabMigrationError, NotFound, RemoteActionFailed
from .models import (
    LabReference,
    MachineReference,
    MigrationOutcome,
    MigrationReport,
    MigrationRequest,
    MigrationTask,
)
from .orchestrator import MigrationOrchestrator, OrchestrationState

__all__ = [
    "AccessDenied",
    "CleanupFailed",
    "InvalidArgument",
    "LabMigrationError",
    "NotFound",
    "RemoteActionFailed",
    "LabReference",
    "MachineReference",
    "MigrationOutcome",
    "MigrationReport",
    "MigrationRequest",
    "MigrationTask",
    "MigrationOrchestrator",
    "OrchestrationState",
]
