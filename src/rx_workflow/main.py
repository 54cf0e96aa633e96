"""FastAPI gateway exposing one actor's prescription workspace as JSON."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rx_workflow.config import settings
from rx_workflow.exceptions import Unauthorized, WorkflowError
from rx_workflow.schemas.base import WireModel
from rx_workflow.schemas.session import LoginRequest
from rx_workflow.services.workspace import Workspace

load_dotenv(override=True)

logger = logging.getLogger(__name__)


class PharmacySelection(WireModel):
    pharmacy_id: int


class DispatchForm(WireModel):
    prescription_id: Optional[str] = None
    pharmacy_id: Optional[int] = None


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def create_app(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    base_url: Optional[str] = None,
) -> FastAPI:
    """Build the gateway; `transport` and `base_url` point it at another API."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        logging.basicConfig(level=settings.log_level.upper())
        logger.info("Prescription workspace gateway starting (api=%s)", base_url or settings.api_base_url)
        app.state.workspace = None
        try:
            yield
        finally:
            if app.state.workspace is not None:
                await app.state.workspace.close()
            logger.info("Prescription workspace gateway shutting down")

    app = FastAPI(
        title="Prescription Workspace",
        description="Prescription lifecycle and pharmacy dispatch workflow",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError):
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    def get_workspace(request: Request) -> Workspace:
        workspace = request.app.state.workspace
        if workspace is None:
            raise Unauthorized("Login required.")
        return workspace

    # ========================================================================
    # Health & Session
    # ========================================================================

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "rx-workflow"}

    @app.post("/session", status_code=201)
    async def sign_in(credentials: LoginRequest, request: Request):
        """Log in and open a fresh workspace for the returned role."""
        workspace = await Workspace.sign_in(
            credentials.email,
            credentials.password,
            base_url=base_url,
            transport=transport,
        )
        previous = request.app.state.workspace
        request.app.state.workspace = workspace
        if previous is not None:
            await previous.close()
        await workspace.pending.refresh()
        session = workspace.session
        return {
            "name": session.name,
            "email": session.email,
            "role": session.role.value,
            "pendingCount": workspace.pending.count,
        }

    @app.delete("/session", status_code=204)
    async def sign_out(request: Request):
        workspace = request.app.state.workspace
        request.app.state.workspace = None
        if workspace is not None:
            await workspace.close()

    @app.get("/workspace")
    async def workspace_state(workspace: Workspace = Depends(get_workspace)):
        """Snapshot of the prescription view, the dispatch form and the badge."""
        return {
            "role": workspace.role.value if workspace.role else None,
            "prescriptions": _dump(workspace.prescriptions.snapshot()),
            "dispatch": _dump(workspace.dispatch.snapshot()),
            "pendingCount": workspace.pending.count,
        }

    # ========================================================================
    # Prescription Lifecycle
    # ========================================================================

    @app.get("/prescriptions")
    async def list_prescriptions(workspace: Workspace = Depends(get_workspace)):
        await workspace.prescriptions.list_prescriptions()
        return _dump(workspace.prescriptions.snapshot())

    @app.get("/prescriptions/{prescription_id}")
    async def get_prescription(
        prescription_id: int, workspace: Workspace = Depends(get_workspace)
    ):
        detail = await workspace.prescriptions.get_detail(prescription_id)
        return _dump(detail)

    @app.post("/prescriptions/{prescription_id}/advance")
    async def advance_prescription(
        prescription_id: int, workspace: Workspace = Depends(get_workspace)
    ):
        """Pharmacist-only: move to the next pharmacy step."""
        status = await workspace.prescriptions.advance(prescription_id, workspace.role)
        return {
            "prescriptionId": prescription_id,
            "status": status.value,
            "pendingCount": workspace.pending.count,
        }

    # ========================================================================
    # Dispatch
    # ========================================================================

    @app.get("/pharmacies")
    async def search_pharmacies(keyword: str = "", workspace: Workspace = Depends(get_workspace)):
        await workspace.dispatch.search_pharmacies(keyword)
        return _dump(workspace.dispatch.snapshot())

    @app.put("/dispatch/pharmacy")
    async def select_pharmacy(
        selection: PharmacySelection, workspace: Workspace = Depends(get_workspace)
    ):
        workspace.dispatch.select_pharmacy(selection.pharmacy_id)
        return _dump(workspace.dispatch.snapshot())

    @app.post("/dispatch")
    async def dispatch_prescription(
        form: DispatchForm, workspace: Workspace = Depends(get_workspace)
    ):
        """Doctor-only: send a CREATED prescription to the selected pharmacy."""
        result = await workspace.dispatch.dispatch(
            form.prescription_id, form.pharmacy_id, actor_role=workspace.role
        )
        return _dump(result)

    @app.get("/pending-count")
    async def pending_count(workspace: Workspace = Depends(get_workspace)):
        return {"pendingCount": await workspace.pending.refresh()}

    return app


app = create_app()
