# --- azure_lab_migrator/main.py ---

from fastapi import FastAPI, Depends, HTTPException, Header
from fastapi.responses import JSONResponse
from azure.core.exceptions import AzureError
from .azure_helpers import configure_azure_sdk_logging
from .exceptions import AccessDenied, InvalidArgument, NotFound
from .models import MigrationRequest
from .orchestrator import MigrationOrchestrator
from .remote_api import AzureScopeConnector, ScopeConnector
import os
import logging

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(message)s"
)
configure_azure_sdk_logging()

app = FastAPI(docs_url="/docs", redoc_url=None)

INTERNAL_SECRET = os.getenv("INTERNAL_SECRET")

# --- Internal secret validation ---
def verify_internal_secret(x_internal_secret: str = Header(...)):
    if INTERNAL_SECRET is None:
        raise HTTPException(status_code=500, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != INTERNAL_SECRET:
        raise HTTPException(status_code=403, detail="Forbidden: Invalid internal secret")

def get_connector() -> ScopeConnector:
    return AzureScopeConnector()

# --- Endpoints ---
@app.get("/")
def root():
    return {"message": "Lab Migrator API is up and running"}

@app.post("/migrate-lab")
def migrate_lab(request: MigrationRequest,
                _: str = Depends(verify_internal_secret),
                connector: ScopeConnector = Depends(get_connector)):
    logging.info(
        f"[API] Migration requested: {request.source_lab_name} ({request.source_subscription_id}) -> "
        f"{request.destination_lab_name} ({request.destination_subscription_id})"
    )
    orchestrator = MigrationOrchestrator(connector)
    try:
        report = orchestrator.run(request)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AccessDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AzureError as e:
        logging.error(f"[API] Azure request failed before dispatch: {e}")
        raise HTTPException(status_code=502, detail=f"Azure request failed: {e}")

    return JSONResponse(
        status_code=200 if report.succeeded else 502,
        content=report.model_dump(),
    )
