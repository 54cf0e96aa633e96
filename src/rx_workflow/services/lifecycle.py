"""
Prescription lifecycle manager.

Owns the workspace view of prescriptions (list, selection, detail) and the
pharmacist-only advance operation:

    RECEIVED -> DISPENSING -> COMPLETED

CREATED prescriptions leave their initial state only through dispatch
(see services.dispatch).
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from rx_workflow.exceptions import (
    NoSuccessorState,
    RemoteFailure,
    ValidationGap,
    WorkflowError,
)
from rx_workflow.schemas.prescription import (
    PrescriptionDetail,
    PrescriptionStatus,
    PrescriptionSummary,
    StatusUpdateRequest,
)
from rx_workflow.schemas.session import Role
from rx_workflow.schemas.workspace import StatusChange, WorkspaceSnapshot
from rx_workflow.services.api_client import ApiClient, parse_payload
from rx_workflow.services.auth import require_role
from rx_workflow.services.events import StatusEvents
from rx_workflow.services.inflight import RequestTickets, TransitionGuard
from rx_workflow.services.store import WorkspaceStore

logger = logging.getLogger(__name__)

_LIST_KEY = ("list",)


class PrescriptionLifecycleManager:
    """Reads prescriptions and advances them through the pharmacy steps."""

    def __init__(
        self,
        api: ApiClient,
        store: Optional[WorkspaceStore] = None,
        events: Optional[StatusEvents] = None,
        guard: Optional[TransitionGuard] = None,
    ):
        self.api = api
        self.store = store or WorkspaceStore()
        self.events = events or StatusEvents()
        self.guard = guard or TransitionGuard()
        self._tickets = RequestTickets()

    def snapshot(self) -> WorkspaceSnapshot:
        return self.store.snapshot()

    @contextmanager
    def _surfacing(self) -> Iterator[None]:
        """Record the reason of any workflow error as the visible message."""
        try:
            yield
        except WorkflowError as e:
            self.store.set_message(e.message)
            raise

    # ========================================================================
    # Lookups
    # ========================================================================

    async def list_prescriptions(self) -> list[PrescriptionSummary]:
        """
        Full refresh of the prescriptions visible to the signed-in actor.

        The server scopes the list by role. After the refresh the selection
        is reconciled: it stays if the selected id is still listed, otherwise
        it moves to the first item (or to nothing when the list is empty).
        """
        ticket = self._tickets.issue()
        with self._surfacing():
            payload = await self.api.request("GET", "/prescriptions")
            items = parse_payload(list[PrescriptionSummary], payload)

        if not self._tickets.accept(_LIST_KEY, ticket):
            return items

        self.store.replace_list(items)
        self.store.set_message(None)
        await self._reconcile_selection(items)
        return items

    async def _reconcile_selection(self, items: list[PrescriptionSummary]) -> None:
        if not items:
            self.store.select(None)
            return
        selected = self.store.selected_id
        if selected is not None and self.store.contains(selected):
            return
        first_id = items[0].prescription_id
        try:
            await self.get_detail(first_id)
        except RemoteFailure as e:
            # The list itself is fresh; the detail stays retryable.
            logger.warning("Could not load detail for %s: %s", first_id, e.message)

    async def get_detail(self, prescription_id: int) -> PrescriptionDetail:
        """
        Select a prescription and load its full detail.

        On failure the previously shown detail is kept and RemoteFailure is
        raised so the caller can retry.
        """
        self.store.select(prescription_id)
        return await self._load_detail(prescription_id)

    async def _load_detail(self, prescription_id: int) -> PrescriptionDetail:
        ticket = self._tickets.issue()
        try:
            payload = await self.api.request("GET", f"/prescriptions/{prescription_id}")
            detail = parse_payload(PrescriptionDetail, payload)
        except WorkflowError as e:
            if self.store.selected_id == prescription_id:
                self.store.set_message(e.message)
            raise

        if self._tickets.accept(("detail", prescription_id), ticket):
            self.store.apply_detail(detail)
        return detail

    # ========================================================================
    # Advance
    # ========================================================================

    async def advance(
        self, prescription_id: int, actor_role: Optional[Role]
    ) -> PrescriptionStatus:
        """
        Move a dispatched prescription to its next pharmacy step.

        Raises Unauthorized for non-pharmacists, ValidationGap for ids that
        were never listed or loaded, and NoSuccessorState for CREATED or
        COMPLETED prescriptions, all without contacting the server.

        Once the server accepts the update the advance counts as done. The
        follow-up reads only confirm it: their failures are logged and the
        status-change event is published only with a status the server
        reported back.
        """
        with self._surfacing():
            require_role(actor_role, Role.PHARMACIST, "advance a prescription")

            current = self.store.known_status(prescription_id)
            if current is None:
                raise ValidationGap(
                    f"Load prescription {prescription_id} before advancing it.",
                    detail={"prescription_id": prescription_id},
                )

            next_status = current.advance_target()
            if next_status is None:
                raise NoSuccessorState(
                    _no_successor_message(prescription_id, current),
                    detail={"prescription_id": prescription_id, "status": current.value},
                )

            with self.guard.hold(prescription_id):
                body = StatusUpdateRequest(status=next_status)
                await self.api.request(
                    "PATCH",
                    f"/prescriptions/{prescription_id}/status",
                    json=body.model_dump(mode="json", by_alias=True),
                )
                logger.info(
                    "Prescription %s: %s -> %s",
                    prescription_id,
                    current.value,
                    next_status.value,
                )

                confirmed = await self._reload_after_advance(prescription_id)
                if confirmed is not None:
                    await self.events.publish(
                        StatusChange(prescription_id=prescription_id, status=confirmed)
                    )

        if confirmed is None:
            self.store.set_message(
                "Status updated, but the prescription could not be reloaded."
            )
            return next_status
        self.store.set_message("Status updated.")
        return confirmed

    async def _reload_after_advance(
        self, prescription_id: int
    ) -> Optional[PrescriptionStatus]:
        """Status the server reports after an accepted update, or None if unreadable."""
        confirmed = None
        try:
            confirmed = (await self._load_detail(prescription_id)).status
        except WorkflowError as e:
            logger.warning("Detail reload after advancing %s failed: %s", prescription_id, e.message)

        try:
            items = await self.list_prescriptions()
        except WorkflowError as e:
            logger.warning("List refresh after advance failed: %s", e.message)
        else:
            if confirmed is None:
                confirmed = next(
                    (p.status for p in items if p.prescription_id == prescription_id), None
                )
        return confirmed

    async def on_status_change(self, change: StatusChange) -> None:
        """Refresh the list and a selected detail that a change elsewhere left behind."""
        known = self.store.known_status(change.prescription_id)
        if known is not None and known.rank >= change.status.rank:
            return
        try:
            await self.list_prescriptions()
            detail = self.store.snapshot().detail
            if (
                detail is not None
                and detail.prescription_id == change.prescription_id
                and detail.status.rank < change.status.rank
            ):
                await self._load_detail(change.prescription_id)
        except WorkflowError as e:
            logger.warning("Refresh after status change of %s failed: %s", change.prescription_id, e.message)


def _no_successor_message(prescription_id: int, status: PrescriptionStatus) -> str:
    if status is PrescriptionStatus.CREATED:
        return (
            f"Prescription {prescription_id} has not been dispatched yet; "
            "dispatch it to a pharmacy first."
        )
    return f"Prescription {prescription_id} is {status.value.lower()} and can no longer change."
