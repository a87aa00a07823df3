"""
Command line entry point.

Usage: azure-lab-migrator --source-subscription <id> --source-lab <lab> \
    --destination-subscription <id> --destination-lab <lab> [--source-vm <vm> [--destination-vm <name>]]
"""
import logging
import os
from typing import Optional

import typer
from azure.core.exceptions import AzureError

from .azure_helpers import configure_azure_sdk_logging
from .exceptions import LabMigrationError
from .models import MigrationRequest
from .orchestrator import DEFAULT_WAIT_TIMEOUT, MigrationOrchestrator
from .remote_api import AzureScopeConnector, ScopeConnector

app = typer.Typer(add_completion=False)


def get_connector() -> ScopeConnector:
    return AzureScopeConnector()


@app.command()
def migrate(
    source_subscription: str = typer.Option(..., help="Subscription id of the source lab"),
    source_lab: str = typer.Option(..., help="Source DevTest Lab name"),
    destination_subscription: str = typer.Option(..., help="Subscription id of the destination lab"),
    destination_lab: str = typer.Option(..., help="Destination DevTest Lab name"),
    source_vm: Optional[str] = typer.Option(None, help="Copy only this VM (default: every VM in the lab)"),
    destination_vm: Optional[str] = typer.Option(None, help="New name for the copied VM, needs --source-vm"),
    wait_timeout: Optional[float] = typer.Option(DEFAULT_WAIT_TIMEOUT, help="Give up on imports after this many seconds"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only list the VMs that would be imported"),
    log_level: str = typer.Option(os.getenv("LOG_LEVEL", "INFO"), help="Logging level"),
) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s"
    )
    configure_azure_sdk_logging()

    request = MigrationRequest(
        source_subscription_id=source_subscription,
        source_lab_name=source_lab,
        source_vm_name=source_vm,
        destination_vm_name=destination_vm,
        destination_subscription_id=destination_subscription,
        destination_lab_name=destination_lab,
    )
    orchestrator = MigrationOrchestrator(get_connector(), wait_timeout=wait_timeout)

    try:
        if dry_run:
            for task in orchestrator.plan(request):
                typer.echo(f"[PLAN] {task.source_machine.lab_name}/{task.source_machine.machine_name} -> "
                           f"{task.destination_lab.lab_name}/{task.target_machine_name}")
            return
        report = orchestrator.run(request, on_outcome=lambda o: typer.echo(o.describe()))
    except (LabMigrationError, AzureError) as e:
        typer.echo(f"[ERROR] {e}", err=True)
        raise typer.Exit(code=1)

    if not report.succeeded:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
