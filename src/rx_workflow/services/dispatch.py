"""
Dispatch coordinator.

Binds a CREATED prescription to a pharmacy. This is the only path from
CREATED to RECEIVED; the server assigns the pharmacy and moves the status in
one request. Whether the prescription is still CREATED is checked by the
server, and a violation comes back as RemoteFailure.
"""

import logging
from typing import Optional, Union

from rx_workflow.exceptions import ValidationGap, WorkflowError
from rx_workflow.schemas.pharmacy import DispatchRequest, PharmacySummary
from rx_workflow.schemas.prescription import PrescriptionStatus
from rx_workflow.schemas.session import Role
from rx_workflow.schemas.workspace import DispatchResult, DispatchSnapshot, StatusChange
from rx_workflow.services.api_client import ApiClient
from rx_workflow.services.auth import require_role
from rx_workflow.services.events import StatusEvents
from rx_workflow.services.inflight import TransitionGuard
from rx_workflow.services.pharmacies import PharmacyDirectory

logger = logging.getLogger(__name__)


class DispatchCoordinator:
    """Pharmacy search, pharmacy selection and the dispatch request."""

    def __init__(
        self,
        api: ApiClient,
        directory: Optional[PharmacyDirectory] = None,
        events: Optional[StatusEvents] = None,
        guard: Optional[TransitionGuard] = None,
    ):
        self.api = api
        self.directory = directory or PharmacyDirectory(api)
        self.events = events or StatusEvents()
        self.guard = guard or TransitionGuard()

        self._keyword = ""
        self._candidates: tuple[PharmacySummary, ...] = ()
        self._selected_pharmacy_id: Optional[int] = None
        self._prescription_id = ""
        self._message: Optional[str] = None

    def snapshot(self) -> DispatchSnapshot:
        return DispatchSnapshot(
            keyword=self._keyword,
            candidates=self._candidates,
            selected_pharmacy_id=self._selected_pharmacy_id,
            prescription_id=self._prescription_id,
            message=self._message,
        )

    @property
    def selected_pharmacy_id(self) -> Optional[int]:
        return self._selected_pharmacy_id

    # ========================================================================
    # Pharmacy selection
    # ========================================================================

    async def search_pharmacies(self, keyword: str) -> tuple[PharmacySummary, ...]:
        """
        Replace the candidates with the directory's matches for `keyword`.

        The first match becomes the selected pharmacy. No match leaves nothing
        selected, so dispatch stays blocked until another search succeeds.
        """
        keyword = (keyword or "").strip()
        if not keyword:
            self._message = "Enter a keyword to search pharmacies."
            raise ValidationGap(self._message)

        self._keyword = keyword
        try:
            results = await self.directory.search(keyword)
        except WorkflowError as e:
            self._message = e.message
            raise

        self._candidates = tuple(results)
        self._selected_pharmacy_id = results[0].id if results else None
        self._message = f"Found {len(results)} pharmacies."
        return self._candidates

    def select_pharmacy(self, pharmacy_id: int) -> PharmacySummary:
        for pharmacy in self._candidates:
            if pharmacy.id == pharmacy_id:
                self._selected_pharmacy_id = pharmacy_id
                return pharmacy
        raise ValidationGap(
            f"Pharmacy {pharmacy_id} is not among the search results.",
            detail={"pharmacy_id": pharmacy_id},
        )

    def set_prescription_id(self, value: Union[str, int, None]) -> None:
        self._prescription_id = "" if value is None else str(value)

    # ========================================================================
    # Dispatch
    # ========================================================================

    async def dispatch(
        self,
        prescription_id: Union[str, int, None] = None,
        pharmacy_id: Optional[int] = None,
        *,
        actor_role: Optional[Role],
    ) -> DispatchResult:
        """
        Send a prescription to a pharmacy.

        Missing values fall back to the entered prescription id and the
        selected pharmacy. A failed dispatch is not retried; the entered id
        is kept so the doctor can resubmit.
        """
        try:
            require_role(actor_role, Role.DOCTOR, "dispatch a prescription")
            target_pharmacy = (
                pharmacy_id if pharmacy_id is not None else self._selected_pharmacy_id
            )
            if target_pharmacy is None:
                raise ValidationGap("Select a pharmacy before dispatching.")
            target_id = _parse_prescription_id(
                prescription_id if prescription_id is not None else self._prescription_id
            )

            with self.guard.hold(target_id):
                body = DispatchRequest(pharmacy_id=target_pharmacy)
                await self.api.request(
                    "POST",
                    f"/prescriptions/{target_id}/dispatch",
                    json=body.model_dump(by_alias=True),
                )
        except WorkflowError as e:
            self._message = e.message
            raise

        logger.info("Prescription %s dispatched to pharmacy %s", target_id, target_pharmacy)
        self._prescription_id = ""
        self._message = "Prescription dispatched to the pharmacy."
        await self.events.publish(
            StatusChange(prescription_id=target_id, status=PrescriptionStatus.RECEIVED)
        )
        return DispatchResult(
            prescription_id=target_id,
            pharmacy_id=target_pharmacy,
            message=self._message,
        )


def _parse_prescription_id(value: Union[str, int, None]) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        candidate = value
    else:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValidationGap("Enter the prescription id to dispatch.")
        if not text.isdecimal():
            raise ValidationGap(
                f"Prescription id '{text}' is not a number.",
                detail={"prescription_id": text},
            )
        candidate = int(text)
    if candidate <= 0:
        raise ValidationGap(
            f"Prescription id {candidate} is not valid.",
            detail={"prescription_id": candidate},
        )
    return candidate
