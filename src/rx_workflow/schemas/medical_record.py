"""
Medical record schemas.

Records are owned by the record service; this package reads them for context
and forwards authored records unchanged. Symptoms and treatments are kept as
opaque JSON objects.
"""

from datetime import date
from typing import Any, Optional

from pydantic import Field

from rx_workflow.schemas.base import WireModel
from rx_workflow.schemas.prescription import DoctorRef, PrescriptionStatus


# ============================================================================
# Read Schemas
# ============================================================================

class PersonSummary(WireModel):
    id: int
    name: str
    ssn: Optional[str] = None
    phone: Optional[str] = None


class PatientLookup(WireModel):
    """Patient search hit; every field may be missing on partial matches."""

    id: Optional[int] = None
    name: Optional[str] = None
    ssn: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[date] = None


class MedicalRecordSummary(WireModel):
    record_id: int
    visit_date: date
    diagnosis: str
    patient: PersonSummary
    doctor: DoctorRef


class RecordMedicine(WireModel):
    medicine_id: int
    name: str
    manufacturer: Optional[str] = None
    efficacy: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    days: Optional[int] = None
    ingredients: tuple[dict[str, Any], ...] = ()


class RecordPrescription(WireModel):
    """Prescription summary embedded in a record detail."""

    id: int
    issue_date: date
    status: PrescriptionStatus
    pharmacy_id: Optional[int] = None
    pharmacy_name: Optional[str] = None
    medicines: tuple[RecordMedicine, ...] = ()


class MedicalRecordDetail(WireModel):
    record_id: int
    visit_date: date
    diagnosis: str
    patient: PatientLookup
    doctor: DoctorRef
    symptoms: tuple[dict[str, Any], ...] = ()
    treatments: tuple[dict[str, Any], ...] = ()
    prescription: Optional[RecordPrescription] = None


class MedicineSearchResult(WireModel):
    id: int
    name: str
    manufacturer: Optional[str] = None
    efficacy: Optional[str] = None


# ============================================================================
# Authoring Payloads
# ============================================================================

class RecordPatientInput(WireModel):
    id: Optional[int] = None
    name: str = Field(..., min_length=1)
    ssn: Optional[str] = None
    phone: Optional[str] = None


class PrescribedMedicineInput(WireModel):
    medicine_id: Optional[int] = None
    name: str = Field(..., min_length=1)
    dosage: Optional[str] = None
    instruction: Optional[str] = None


class PrescriptionInput(WireModel):
    medicines: list[PrescribedMedicineInput] = Field(..., min_length=1)


class MedicalRecordPayload(WireModel):
    """Body of POST /medical-records; a prescription, if present, starts CREATED."""

    visit_date: date
    diagnosis: str = Field(..., min_length=1)
    patient: RecordPatientInput
    symptoms: list[dict[str, Any]] = []
    treatments: list[dict[str, Any]] = []
    prescription: Optional[PrescriptionInput] = None
