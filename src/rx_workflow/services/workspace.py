"""Wires one signed-in actor's services around a shared API client."""

import logging
from typing import Optional

import httpx

from rx_workflow.schemas.session import AuthSession, Role
from rx_workflow.services.api_client import ApiClient
from rx_workflow.services.auth import login
from rx_workflow.services.dispatch import DispatchCoordinator
from rx_workflow.services.events import StatusEvents
from rx_workflow.services.inflight import TransitionGuard
from rx_workflow.services.lifecycle import PrescriptionLifecycleManager
from rx_workflow.services.medical_records import MedicalRecordService
from rx_workflow.services.pending import PendingCounter
from rx_workflow.services.pharmacies import PharmacyDirectory
from rx_workflow.services.store import WorkspaceStore

logger = logging.getLogger(__name__)


class Workspace:
    """
    Session-scoped bundle of the lifecycle manager, dispatch coordinator,
    record client and pending counter.

    Both transition paths share one TransitionGuard and one StatusEvents bus,
    so a dispatch and an advance of the same prescription never overlap.
    Every status change refreshes the pending count, and a dispatch also
    refreshes the prescription list.
    """

    def __init__(self, api: ApiClient, session: Optional[AuthSession] = None):
        self.api = api
        self.session = session
        if session is not None:
            api.token = session.access_token

        self.events = StatusEvents()
        self.guard = TransitionGuard()
        self.store = WorkspaceStore()

        self.prescriptions = PrescriptionLifecycleManager(
            api, store=self.store, events=self.events, guard=self.guard
        )
        self.dispatch = DispatchCoordinator(
            api, directory=PharmacyDirectory(api), events=self.events, guard=self.guard
        )
        self.records = MedicalRecordService(api)
        self.pending = PendingCounter(api, self.role)
        self.events.subscribe(self.prescriptions.on_status_change)
        self.events.subscribe(self.pending.on_status_change)

    @property
    def role(self) -> Optional[Role]:
        return self.session.role if self.session else None

    @classmethod
    async def sign_in(
        cls,
        email: str,
        password: str,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Workspace":
        api = ApiClient(base_url=base_url, transport=transport)
        try:
            session = await login(api, email, password)
        except Exception:
            await api.close()
            raise
        return cls(api, session)

    async def close(self):
        await self.api.close()
