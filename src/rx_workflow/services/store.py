"""Session-scoped store for the prescription list, selection and detail."""

import logging
from typing import Iterable, Optional

from rx_workflow.schemas.prescription import (
    PrescriptionDetail,
    PrescriptionStatus,
    PrescriptionSummary,
)
from rx_workflow.schemas.workspace import WorkspaceSnapshot

logger = logging.getLogger(__name__)


class WorkspaceStore:
    """
    Holds the only shared mutable state of the workspace.

    The list and the detail are replaced wholesale, never merged field by
    field. Readers get an immutable WorkspaceSnapshot.
    """

    def __init__(self):
        self._prescriptions: tuple[PrescriptionSummary, ...] = ()
        self._selected_id: Optional[int] = None
        self._detail: Optional[PrescriptionDetail] = None
        self._message: Optional[str] = None

    def snapshot(self) -> WorkspaceSnapshot:
        return WorkspaceSnapshot(
            prescriptions=self._prescriptions,
            selected_id=self._selected_id,
            detail=self._detail,
            message=self._message,
        )

    @property
    def selected_id(self) -> Optional[int]:
        return self._selected_id

    @property
    def prescriptions(self) -> tuple[PrescriptionSummary, ...]:
        return self._prescriptions

    def contains(self, prescription_id: int) -> bool:
        return any(p.prescription_id == prescription_id for p in self._prescriptions)

    def known_status(self, prescription_id: int) -> Optional[PrescriptionStatus]:
        """
        Most advanced status seen for the id in the detail or the list.

        Statuses only move forward, so the higher rank is the fresher one.
        None when the id was never loaded.
        """
        seen = [
            item.status for item in self._prescriptions if item.prescription_id == prescription_id
        ]
        if self._detail is not None and self._detail.prescription_id == prescription_id:
            seen.append(self._detail.status)
        if not seen:
            return None
        return max(seen, key=lambda status: status.rank)

    # ========================================================================
    # Mutation entry points
    # ========================================================================

    def replace_list(self, prescriptions: Iterable[PrescriptionSummary]) -> None:
        self._prescriptions = tuple(prescriptions)

    def select(self, prescription_id: Optional[int]) -> None:
        self._selected_id = prescription_id
        if prescription_id is None:
            self._detail = None

    def apply_detail(self, detail: PrescriptionDetail) -> bool:
        """
        Show `detail` if it belongs to the current selection.

        A detail whose status is behind the one already shown for the same
        prescription is stale and is dropped.
        """
        if detail.prescription_id != self._selected_id:
            logger.debug(
                "Detail for %s arrived after selection moved to %s",
                detail.prescription_id,
                self._selected_id,
            )
            return False
        current = self._detail
        if (
            current is not None
            and current.prescription_id == detail.prescription_id
            and detail.status.rank < current.status.rank
        ):
            logger.warning(
                "Ignoring detail for %s moving backward from %s to %s",
                detail.prescription_id,
                current.status.value,
                detail.status.value,
            )
            return False
        self._detail = detail
        return True

    def set_message(self, message: Optional[str]) -> None:
        self._message = message
