import logging
from typing import Optional

from .exceptions import RemoteActionFailed
from .models import MigrationOutcome, MigrationTask
from .remote_api import IMPORT_VM_ACTION, LAB_API_VERSION, LAB_RESOURCE_TYPE
from .session import SessionArtifact, import_session


def build_import_payload(task: MigrationTask) -> dict:
    payload = {"sourceVirtualMachineResourceId": task.source_machine.resource_id}
    if task.destination_name:
        payload["destinationVirtualMachineName"] = task.destination_name
    return payload


def outcome_for(task: MigrationTask, error: Optional[str] = None) -> MigrationOutcome:
    return MigrationOutcome(
        source_lab_name=task.source_machine.lab_name,
        source_machine_name=task.source_machine.machine_name,
        destination_lab_name=task.destination_lab.lab_name,
        destination_machine_name=task.target_machine_name,
        succeeded=error is None,
        error_detail=error,
    )


class MigrationWorker:
    """Imports one lab VM into the destination lab. Never raises out of run()."""

    def __init__(self, artifact: SessionArtifact):
        self.artifact = artifact

    def run(self, task: MigrationTask) -> MigrationOutcome:
        source = task.source_machine
        destination = task.destination_lab
        logging.info(f"[WORKER] Importing {source.lab_name}/{source.machine_name} into {destination.lab_name}")

        try:
            with import_session(self.artifact) as api:
                result = api.invoke_resource_action(
                    resource_group=destination.resource_group,
                    resource_type=LAB_RESOURCE_TYPE,
                    resource_name=destination.lab_name,
                    action=IMPORT_VM_ACTION,
                    api_version=LAB_API_VERSION,
                    parameters=build_import_payload(task),
                    force=True,
                )
            status = (result or {}).get("status")
            if status != "Succeeded":
                raise RemoteActionFailed(source.lab_name, source.machine_name, f"status {status!r}")
        except RemoteActionFailed as e:
            logging.error(f"[WORKER] {e}")
            return outcome_for(task, error=str(e))
        except Exception as e:
            failure = RemoteActionFailed(source.lab_name, source.machine_name, str(e))
            logging.error(f"[WORKER] {failure}", exc_info=True)
            return outcome_for(task, error=str(failure))

        logging.info(f"[WORKER] Imported {source.lab_name}/{source.machine_name} as "
                     f"{destination.lab_name}/{task.target_machine_name}")
        return outcome_for(task)

