"""Read-only views handed out by the workspace services."""

from typing import Optional

from rx_workflow.schemas.base import WireModel
from rx_workflow.schemas.pharmacy import PharmacySummary
from rx_workflow.schemas.prescription import (
    PrescriptionDetail,
    PrescriptionStatus,
    PrescriptionSummary,
)


class StatusChange(WireModel):
    """Published after a confirmed dispatch or advance."""

    prescription_id: int
    status: PrescriptionStatus


class WorkspaceSnapshot(WireModel):
    """Point-in-time copy of the prescription list, selection and detail."""

    prescriptions: tuple[PrescriptionSummary, ...] = ()
    selected_id: Optional[int] = None
    detail: Optional[PrescriptionDetail] = None
    message: Optional[str] = None


class DispatchSnapshot(WireModel):
    keyword: str = ""
    candidates: tuple[PharmacySummary, ...] = ()
    selected_pharmacy_id: Optional[int] = None
    prescription_id: str = ""
    message: Optional[str] = None


class DispatchResult(WireModel):
    prescription_id: int
    pharmacy_id: int
    message: str
