class LabMigrationError(Exception):
    pass


class AccessDenied(LabMigrationError):
    def __init__(self, scope_id: str, reason: str = "") -> None:
        self.scope_id = scope_id
        self.reason = reason

    def __str__(self) -> str:
        msg = f"Access denied to subscription: {self.scope_id}"
        return f"{msg} ({self.reason})" if self.reason else msg


class NotFound(LabMigrationError):
    def __init__(self, kind: str, name: str, scope_id: str = "") -> None:
        self.kind = kind
        self.name = name
        self.scope_id = scope_id

    def __str__(self) -> str:
        where = f" in subscription {self.scope_id}" if self.scope_id else ""
        return f"{self.kind} not found{where}: {self.name}"


class InvalidArgument(LabMigrationError):
    pass


class RemoteActionFailed(LabMigrationError):
    def __init__(self, lab_name: str, machine_name: str, reason: str) -> None:
        self.lab_name = lab_name
        self.machine_name = machine_name
        self.reason = reason

    def __str__(self) -> str:
        return f"Import of {self.lab_name}/{self.machine_name} failed: {self.reason}"


class CleanupFailed(LabMigrationError):
    pass
