# --- azure_lab_migrator/models.py ---

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class LabReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    scope_id: str
    lab_name: str
    resource_group: str
    lab_id: str


class MachineReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    lab_id: str
    lab_name: str
    machine_name: str
    resource_id: str


class MigrationTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_machine: MachineReference
    destination_lab: LabReference
    destination_name: Optional[str] = None

    @property
    def target_machine_name(self) -> str:
        return self.destination_name or self.source_machine.machine_name


class MigrationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_lab_name: str
    source_machine_name: str
    destination_lab_name: str
    destination_machine_name: str
    succeeded: bool
    error_detail: Optional[str] = None

    def describe(self) -> str:
        line = (
            f"{self.source_lab_name}/{self.source_machine_name} -> "
            f"{self.destination_lab_name}/{self.destination_machine_name}"
        )
        if self.succeeded:
            return f"[OK] {line}"
        return f"[FAILED] {line}: {self.error_detail}"


class MigrationRequest(BaseModel):
    source_subscription_id: str
    source_lab_name: str
    source_vm_name: Optional[str] = None
    destination_vm_name: Optional[str] = None
    destination_subscription_id: str
    destination_lab_name: str


class MigrationReport(BaseModel):
    outcomes: List[MigrationOutcome] = Field(default_factory=list)

    @computed_field
    @property
    def succeeded(self) -> bool:
        return all(o.succeeded for o in self.outcomes)
