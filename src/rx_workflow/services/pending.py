"""Pending-count badge: prescriptions waiting at the pharmacist's pharmacy."""

import logging
from typing import Optional

from rx_workflow.exceptions import WorkflowError
from rx_workflow.schemas.prescription import PrescriptionStatus, PrescriptionSummary
from rx_workflow.schemas.session import Role
from rx_workflow.schemas.workspace import StatusChange
from rx_workflow.services.api_client import ApiClient, parse_payload

logger = logging.getLogger(__name__)


class PendingCounter:
    """
    Counts RECEIVED prescriptions for a pharmacist.

    The count is None for other roles and whenever the last refresh failed.
    """

    def __init__(self, api: ApiClient, role: Optional[Role]):
        self.api = api
        self.role = role
        self.count: Optional[int] = None

    async def refresh(self) -> Optional[int]:
        if self.role is not Role.PHARMACIST or not self.api.token:
            self.count = None
            return None
        try:
            payload = await self.api.request("GET", "/prescriptions")
            items = parse_payload(list[PrescriptionSummary], payload)
        except WorkflowError as e:
            # A badge, not a workflow step: show nothing rather than a stale number.
            logger.warning("Pending count refresh failed: %s", e.message)
            self.count = None
            return None
        self.count = sum(1 for item in items if item.status is PrescriptionStatus.RECEIVED)
        return self.count

    async def on_status_change(self, change: StatusChange) -> None:
        await self.refresh()
