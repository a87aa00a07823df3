"""
Shared test fixtures.

FakeCloud is an in-memory ScopeConnector holding DevTest Labs and their VMs per
subscription, so the orchestrator can run end to end without Azure.
"""

import fnmatch
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from azure_lab_migrator.models import MigrationRequest
from azure_lab_migrator.remote_api import (
    LAB_RESOURCE_TYPE,
    LAB_VM_RESOURCE_TYPE,
    RemoteResourceApi,
    ScopeConnector,
)
from azure_lab_migrator.exceptions import AccessDenied

SOURCE_SUB = "00000000-0000-0000-0000-00000000aaaa"
DEST_SUB = "00000000-0000-0000-0000-00000000bbbb"

ImportBehavior = Union[str, Exception, Callable[[Dict[str, Any]], Optional[str]]]


class FakeResourceApi(RemoteResourceApi):

    def __init__(self, cloud: "FakeCloud", scope_id: str, imported: bool = False) -> None:
        self.cloud = cloud
        self.scope_id = scope_id
        self.imported = imported

    def _resources(self) -> List[Dict[str, Any]]:
        return self.cloud.resources.get(self.scope_id, [])

    def get_resource(self, name, resource_type):
        for r in self._resources():
            if r["type"].lower() == resource_type.lower() and r["name"] == name:
                return dict(r)
        return None

    def get_resource_by_id(self, resource_id):
        for r in self._resources():
            if r["id"].lower() == resource_id.lower():
                return dict(r)
        return None

    def list_resources(self, resource_type, resource_group=None, name_pattern=None):
        return [
            dict(r) for r in self._resources()
            if r["type"].lower() == resource_type.lower()
            and (resource_group is None or r["resource_group"] == resource_group)
            and (name_pattern is None or fnmatch.fnmatchcase(r["name"], name_pattern))
        ]

    def invoke_resource_action(self, resource_group, resource_type, resource_name, action,
                               api_version, parameters, force=True):
        call = {
            "scope_id": self.scope_id,
            "imported_session": self.imported,
            "resource_group": resource_group,
            "resource_type": resource_type,
            "resource_name": resource_name,
            "action": action,
            "api_version": api_version,
            "parameters": dict(parameters),
            "force": force,
            "thread": threading.current_thread().name,
        }
        with self.cloud.lock:
            self.cloud.calls.append(call)

        vm_name = parameters["sourceVirtualMachineResourceId"].rstrip("/").split("/")[-1]
        behavior = self.cloud.import_behavior.get(vm_name, "Succeeded")
        if isinstance(behavior, Exception):
            raise behavior
        if callable(behavior):
            return {"status": behavior(call)}
        return {"status": behavior}

    def close(self):
        with self.cloud.lock:
            self.cloud.closed += 1


class FakeCloud(ScopeConnector):

    def __init__(self) -> None:
        self.resources: Dict[str, List[Dict[str, Any]]] = {}
        self.denied: set = set()
        self.select_error: Optional[Exception] = None
        self.selected: List[str] = []
        self.exports: int = 0
        self.revoked: List[Any] = []
        self.revoke_error: Optional[Exception] = None
        self.session_ttl: Optional[float] = 3600
        self.import_behavior: Dict[str, ImportBehavior] = {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = 0
        self.lock = threading.Lock()

    def add_lab(self, scope_id: str, lab_name: str, resource_group: str) -> str:
        lab_id = (f"/subscriptions/{scope_id}/resourceGroups/{resource_group}"
                  f"/providers/Microsoft.DevTestLab/labs/{lab_name}")
        self.resources.setdefault(scope_id, []).append({
            "id": lab_id,
            "name": lab_name,
            "type": LAB_RESOURCE_TYPE,
            "resource_group": resource_group,
        })
        return lab_id

    def add_vm(self, scope_id: str, lab_name: str, vm_name: str) -> str:
        lab = next(r for r in self.resources[scope_id] if r["name"] == lab_name)
        vm_id = f"{lab['id']}/virtualmachines/{vm_name}"
        self.resources[scope_id].append({
            "id": vm_id,
            "name": f"{lab_name}/{vm_name}",
            "type": LAB_VM_RESOURCE_TYPE,
            "resource_group": lab["resource_group"],
        })
        return vm_id

    def remove_vm(self, scope_id: str, lab_name: str, vm_name: str) -> None:
        self.resources[scope_id] = [
            r for r in self.resources[scope_id] if r["name"] != f"{lab_name}/{vm_name}"
        ]

    def select_scope(self, scope_id):
        self.selected.append(scope_id)
        if self.select_error is not None:
            raise self.select_error
        if scope_id in self.denied:
            raise AccessDenied(scope_id, "no role assignment")
        return FakeResourceApi(self, scope_id)

    def export_session(self, api):
        self.exports += 1
        expires_at = time.time() + self.session_ttl if self.session_ttl is not None else None
        return {"token": f"token-{api.scope_id}"}, expires_at

    def import_session(self, scope_id, exported_form):
        assert exported_form == {"token": f"token-{scope_id}"}
        return FakeResourceApi(self, scope_id, imported=True)

    def revoke_session(self, exported_form):
        if self.revoke_error is not None:
            raise self.revoke_error
        self.revoked.append(exported_form)


@pytest.fixture
def cloud() -> FakeCloud:
    """Source subscription with LabA (vm1, vm2), destination subscription with LabB."""
    fake = FakeCloud()
    fake.add_lab(SOURCE_SUB, "LabA", "rg-source")
    fake.add_vm(SOURCE_SUB, "LabA", "vm1")
    fake.add_vm(SOURCE_SUB, "LabA", "vm2")
    fake.add_lab(DEST_SUB, "LabB", "rg-dest")
    return fake


@pytest.fixture
def request_all() -> MigrationRequest:
    return MigrationRequest(
        source_subscription_id=SOURCE_SUB,
        source_lab_name="LabA",
        destination_subscription_id=DEST_SUB,
        destination_lab_name="LabB",
    )
