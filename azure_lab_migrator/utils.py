from azure.mgmt.core.tools import parse_resource_id, resource_id

from .exceptions import NotFound
from .models import LabReference, MachineReference


def lab_reference(scope_id: str, resource: dict) -> LabReference:
    return LabReference(
        scope_id=scope_id,
        lab_name=resource["name"],
        resource_group=resource["resource_group"],
        lab_id=resource["id"],
    )


def lab_vm_id(lab: LabReference, machine_name: str) -> str:
    return resource_id(
        subscription=lab.scope_id,
        resource_group=lab.resource_group,
        namespace="Microsoft.DevTestLab",
        type="labs",
        name=lab.lab_name,
        child_type_1="virtualmachines",
        child_name_1=machine_name,
    )


def machine_reference(lab: LabReference, resource: dict) -> MachineReference:
    # Lab VMs are child resources: .../labs/<lab>/virtualmachines/<vm>
    parts = parse_resource_id(resource["id"])
    machine_name = parts.get("child_name_1")
    if not machine_name:
        raise NotFound("Virtual machine", resource["id"], lab.scope_id)
    return MachineReference(
        lab_id=lab.lab_id,
        lab_name=lab.lab_name,
        machine_name=machine_name,
        resource_id=resource["id"],
    )
