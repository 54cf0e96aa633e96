"""Prescription schemas and the status state machine."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from rx_workflow.schemas.base import WireModel
from rx_workflow.schemas.pharmacy import PharmacySummary


# ============================================================================
# Status State Machine
# ============================================================================

class PrescriptionStatus(str, Enum):
    """
    Lifecycle of a prescription.

    CREATED -> RECEIVED -> DISPENSING -> COMPLETED

    RECEIVED is only reachable through dispatch; DISPENSING and COMPLETED only
    through advance. COMPLETED is terminal.
    """

    CREATED = "CREATED"
    RECEIVED = "RECEIVED"
    DISPENSING = "DISPENSING"
    COMPLETED = "COMPLETED"

    def successor(self) -> Optional["PrescriptionStatus"]:
        """Immediate next status in the lifecycle, or None when terminal."""
        return _SUCCESSORS[self]

    def advance_target(self) -> Optional["PrescriptionStatus"]:
        """Status the advance operation moves to, or None if advance is not allowed."""
        if self is PrescriptionStatus.CREATED:
            # CREATED prescriptions are dispatched, never advanced
            return None
        return self.successor()

    @property
    def is_terminal(self) -> bool:
        return self.successor() is None

    @property
    def rank(self) -> int:
        return _RANKS[self]


_SUCCESSORS: dict[PrescriptionStatus, Optional[PrescriptionStatus]] = {
    PrescriptionStatus.CREATED: PrescriptionStatus.RECEIVED,
    PrescriptionStatus.RECEIVED: PrescriptionStatus.DISPENSING,
    PrescriptionStatus.DISPENSING: PrescriptionStatus.COMPLETED,
    PrescriptionStatus.COMPLETED: None,
}

_RANKS: dict[PrescriptionStatus, int] = {
    PrescriptionStatus.CREATED: 0,
    PrescriptionStatus.RECEIVED: 1,
    PrescriptionStatus.DISPENSING: 2,
    PrescriptionStatus.COMPLETED: 3,
}


def can_transition(current: PrescriptionStatus, target: PrescriptionStatus) -> bool:
    """True only when `target` is the immediate successor of `current`."""
    return current.successor() is target


# ============================================================================
# Participants
# ============================================================================

class PatientRef(WireModel):
    id: int
    name: str


class DoctorRef(WireModel):
    id: int
    name: str
    hospital_name: Optional[str] = None
    department_name: Optional[str] = None


class MedicineLine(WireModel):
    """One prescribed medicine, in prescription order."""

    name: str = Field(..., min_length=1)
    id: Optional[int] = None
    manufacturer: Optional[str] = None
    effect: Optional[str] = None
    dosage: Optional[str] = None
    instruction: Optional[str] = None


# ============================================================================
# Prescription Schemas
# ============================================================================

class PrescriptionSummary(WireModel):
    """List entry from GET /prescriptions."""

    prescription_id: int
    medical_record_id: int
    issue_date: date
    status: PrescriptionStatus
    diagnosis: str
    patient: PatientRef
    doctor: DoctorRef


class PrescriptionDetail(PrescriptionSummary):
    """Full prescription from GET /prescriptions/{id}."""

    pharmacy: Optional[PharmacySummary] = None
    medicines: tuple[MedicineLine, ...] = ()
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _pharmacy_matches_status(self) -> "PrescriptionDetail":
        if self.status is PrescriptionStatus.CREATED and self.pharmacy is not None:
            raise ValueError("a CREATED prescription cannot have a pharmacy assigned")
        if self.status is not PrescriptionStatus.CREATED and self.pharmacy is None:
            raise ValueError(f"a {self.status.value} prescription must have a pharmacy assigned")
        return self


class StatusUpdateRequest(WireModel):
    """Body of PATCH /prescriptions/{id}/status."""

    status: PrescriptionStatus
