import logging
from typing import List, Optional

from .exceptions import NotFound
from .models import LabReference, MachineReference
from .remote_api import LAB_VM_RESOURCE_TYPE
from .scope import ActiveScope
from .utils import lab_vm_id, machine_reference


class ResourceResolver:

    def resolve(self, scope: ActiveScope, source_lab: LabReference,
                source_vm_name: Optional[str] = None) -> List[MachineReference]:
        if source_vm_name:
            resource = scope.api.get_resource_by_id(lab_vm_id(source_lab, source_vm_name))
            if resource is None:
                # validated earlier, so it was deleted in between
                raise NotFound("Virtual machine", f"{source_lab.lab_name}/{source_vm_name}", scope.scope_id)
            return [machine_reference(source_lab, resource)]

        resources = scope.api.list_resources(
            LAB_VM_RESOURCE_TYPE,
            resource_group=source_lab.resource_group,
            name_pattern=f"{source_lab.lab_name}/*",
        )
        machines = [machine_reference(source_lab, r) for r in resources]
        logging.info(f"[RESOLVE] Found {len(machines)} VMs in lab {source_lab.lab_name}: "
                     f"{[m.machine_name for m in machines]}")
        return machines
