import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import InvalidArgument, NotFound
from .models import LabReference
from .remote_api import LAB_RESOURCE_TYPE, ScopeConnector
from .scope import ActiveScope, with_scope
from .utils import lab_reference, lab_vm_id


@dataclass
class ValidatedScopes:
    source_scope: ActiveScope
    source_lab: LabReference
    destination_scope: ActiveScope
    destination_lab: LabReference
    _scopes: ExitStack = field(default_factory=ExitStack, repr=False)

    def close(self) -> None:
        self._scopes.close()


def _find_lab(scope: ActiveScope, lab_name: str) -> LabReference:
    resource = scope.api.get_resource(lab_name, LAB_RESOURCE_TYPE)
    if resource is None:
        raise NotFound("Lab", lab_name, scope.scope_id)
    return lab_reference(scope.scope_id, resource)


class ScopeValidator:

    def __init__(self, connector: ScopeConnector):
        self.connector = connector

    def validate(self, source_scope_id: str, source_lab_name: str, source_vm_name: Optional[str],
                 destination_scope_id: str, destination_lab_name: str,
                 destination_vm_name: Optional[str] = None) -> ValidatedScopes:
        """
        Check both subscriptions, both labs and the optional source VM.
        Scopes opened here stay open until the returned ValidatedScopes is closed.
        """
        if destination_vm_name and not source_vm_name:
            raise InvalidArgument("A destination VM name requires a source VM name")

        with ExitStack() as stack:
            logging.info(f"[VALIDATE] Checking source lab {source_lab_name} in {source_scope_id}")
            source = stack.enter_context(with_scope(self.connector, source_scope_id))
            source_lab = _find_lab(source, source_lab_name)

            if source_vm_name:
                vm_id = lab_vm_id(source_lab, source_vm_name)
                if source.api.get_resource_by_id(vm_id) is None:
                    raise NotFound("Virtual machine", f"{source_lab_name}/{source_vm_name}", source_scope_id)

            if destination_scope_id == source_scope_id:
                logging.info("[VALIDATE] Destination subscription matches source, reusing it")
                destination = source
            else:
                destination = stack.enter_context(with_scope(self.connector, destination_scope_id))

            logging.info(f"[VALIDATE] Checking destination lab {destination_lab_name} in {destination_scope_id}")
            destination_lab = _find_lab(destination, destination_lab_name)

            return ValidatedScopes(
                source_scope=source,
                source_lab=source_lab,
                destination_scope=destination,
                destination_lab=destination_lab,
                _scopes=stack.pop_all(),
            )
