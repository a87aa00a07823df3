"""
Azure SDK helpers for credential management and token snapshots
"""
import logging
from azure.identity import DefaultAzureCredential
from azure.core.credentials import AccessToken
from typing import Optional
import time

ARM_TOKEN_SCOPE = "https://management.azure.com/.default"

# Singleton credential instance to avoid recreating it multiple times
_credential_instance: Optional[DefaultAzureCredential] = None

def get_azure_credential() -> DefaultAzureCredential:
    """
    Get or create a singleton Azure credential instance.
    This prevents creating multiple credential objects which can cause issues.
    """
    global _credential_instance

    if _credential_instance is None:
        logging.info("[AZURE] Creating new DefaultAzureCredential instance")

        _credential_instance = DefaultAzureCredential(
            # Exclude less common credential types to speed up authentication
            exclude_visual_studio_code_credential=True,
            exclude_shared_token_cache_credential=True,
            exclude_powershell_credential=True
        )
        logging.info("[AZURE] DefaultAzureCredential instance created successfully")

    return _credential_instance


class SnapshotCredential:
    """
    TokenCredential that always hands out one already acquired ARM token.
    Lets worker threads act as the exporting identity without re-authenticating.
    """

    def __init__(self, token: AccessToken):
        self._token = token

    def get_token(self, *scopes, **kwargs) -> AccessToken:
        if self._token.expires_on <= time.time():
            raise ValueError("Token snapshot has expired")
        return self._token

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args) -> None:
        self.close()


def snapshot_token(credential) -> AccessToken:
    return credential.get_token(ARM_TOKEN_SCOPE)


def configure_azure_sdk_logging():
    """
    Configure Azure SDK logging for better debugging
    """
    azure_logger = logging.getLogger('azure')
    azure_logger.setLevel(logging.WARNING)  # Reduce noise from Azure SDK

    logging.getLogger('azure.core.pipeline.policies.http_logging_policy').setLevel(logging.WARNING)
    logging.getLogger('azure.identity').setLevel(logging.INFO)
