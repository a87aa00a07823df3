"""
Remote resource API used by the migrator, plus its Azure Resource Manager implementation.

A ScopeConnector opens subscription-bound RemoteResourceApi handles and exports/imports
sessions so worker threads can act as the same identity.
"""
import fnmatch
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from azure.core.exceptions import ClientAuthenticationError, HttpResponseError, ResourceNotFoundError
from azure.mgmt.core.tools import parse_resource_id
from azure.mgmt.devtestlabs import DevTestLabsClient
from azure.mgmt.devtestlabs.models import ImportLabVirtualMachineRequest
from azure.mgmt.resource import ResourceManagementClient, SubscriptionClient

from .azure_helpers import SnapshotCredential, get_azure_credential, snapshot_token
from .exceptions import AccessDenied

LAB_RESOURCE_TYPE = "Microsoft.DevTestLab/labs"
LAB_VM_RESOURCE_TYPE = "Microsoft.DevTestLab/labs/virtualMachines"
LAB_API_VERSION = "2018-09-15"
IMPORT_VM_ACTION = "importVirtualMachine"


class RemoteResourceApi(ABC):
    """Resource operations bound to one subscription."""

    scope_id: str

    @abstractmethod
    def get_resource(self, name: str, resource_type: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def get_resource_by_id(self, resource_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def list_resources(self, resource_type: str, resource_group: Optional[str] = None,
                       name_pattern: Optional[str] = None) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def invoke_resource_action(self, resource_group: str, resource_type: str, resource_name: str,
                               action: str, api_version: str, parameters: Dict[str, Any],
                               force: bool = True) -> Dict[str, Any]:
        ...

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args) -> None:
        self.close()


class ScopeConnector(ABC):

    @abstractmethod
    def select_scope(self, scope_id: str) -> RemoteResourceApi:
        """Open the subscription, raising AccessDenied if the caller cannot use it."""

    @abstractmethod
    def export_session(self, api: RemoteResourceApi) -> Tuple[Any, Optional[float]]:
        """Return (exported_form, expires_at) for the identity behind `api`."""

    @abstractmethod
    def import_session(self, scope_id: str, exported_form: Any) -> RemoteResourceApi:
        ...

    def revoke_session(self, exported_form: Any) -> None:
        pass


@contextmanager
def _translate_auth_errors(scope_id: str):
    try:
        yield
    except ClientAuthenticationError as e:
        raise AccessDenied(scope_id, str(e)) from e
    except HttpResponseError as e:
        if e.status_code in (401, 403):
            raise AccessDenied(scope_id, str(e)) from e
        raise


def _resource_to_dict(resource) -> Dict[str, Any]:
    parts = parse_resource_id(resource.id)
    return {
        "id": resource.id,
        "name": resource.name,
        "type": resource.type,
        "resource_group": parts.get("resource_group"),
    }


class AzureResourceApi(RemoteResourceApi):

    def __init__(self, credential, subscription_id: str):
        self.scope_id = subscription_id
        self._credential = credential
        self._resources = ResourceManagementClient(credential, subscription_id)

    def get_resource(self, name, resource_type):
        query = f"resourceType eq '{resource_type}' and name eq '{name}'"
        with _translate_auth_errors(self.scope_id):
            for resource in self._resources.resources.list(filter=query):
                return _resource_to_dict(resource)
        return None

    def get_resource_by_id(self, resource_id):
        with _translate_auth_errors(self.scope_id):
            try:
                resource = self._resources.resources.get_by_id(resource_id, LAB_API_VERSION)
            except ResourceNotFoundError:
                return None
        return _resource_to_dict(resource)

    def list_resources(self, resource_type, resource_group=None, name_pattern=None):
        query = f"resourceType eq '{resource_type}'"
        with _translate_auth_errors(self.scope_id):
            if resource_group:
                found = self._resources.resources.list_by_resource_group(resource_group, filter=query)
            else:
                found = self._resources.resources.list(filter=query)
            resources = [_resource_to_dict(r) for r in found]

        if name_pattern:
            resources = [r for r in resources if fnmatch.fnmatchcase(r["name"], name_pattern)]
        return resources

    def invoke_resource_action(self, resource_group, resource_type, resource_name, action,
                               api_version, parameters, force=True):
        # SDK calls never prompt, so `force` needs no handling here.
        if resource_type != LAB_RESOURCE_TYPE or action != IMPORT_VM_ACTION:
            raise ValueError(f"Unsupported action {action} on {resource_type}")

        request = ImportLabVirtualMachineRequest(
            source_virtual_machine_resource_id=parameters["sourceVirtualMachineResourceId"],
            destination_virtual_machine_name=parameters.get("destinationVirtualMachineName"),
        )
        with DevTestLabsClient(self._credential, self.scope_id, api_version=api_version) as client:
            with _translate_auth_errors(self.scope_id):
                poller = client.labs.begin_import_virtual_machine(resource_group, resource_name, request)
                poller.result()
            return {"status": poller.status()}

    def close(self) -> None:
        self._resources.close()


class AzureScopeConnector(ScopeConnector):

    def __init__(self, credential=None):
        self._credential = credential or get_azure_credential()

    def select_scope(self, scope_id):
        logging.info(f"[AZURE] Selecting subscription {scope_id}")
        with SubscriptionClient(self._credential) as client:
            try:
                with _translate_auth_errors(scope_id):
                    client.subscriptions.get(scope_id)
            except ResourceNotFoundError as e:
                # ARM answers 404 for subscriptions the identity cannot see
                raise AccessDenied(scope_id, "subscription not visible to this identity") from e
        return AzureResourceApi(self._credential, scope_id)

    def export_session(self, api):
        with _translate_auth_errors(api.scope_id):
            token = snapshot_token(self._credential)
        return token, float(token.expires_on)

    def import_session(self, scope_id, exported_form):
        return AzureResourceApi(SnapshotCredential(exported_form), scope_id)
