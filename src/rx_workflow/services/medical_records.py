"""Medical record service client (records, patient and medicine lookups)."""

import logging
from typing import Optional

from rx_workflow.exceptions import ValidationGap
from rx_workflow.schemas.medical_record import (
    MedicalRecordDetail,
    MedicalRecordPayload,
    MedicalRecordSummary,
    MedicineSearchResult,
    PatientLookup,
)
from rx_workflow.services.api_client import ApiClient, parse_payload

logger = logging.getLogger(__name__)


class MedicalRecordService:
    """Thin client over /medical-records and /medicines."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def list_records(self) -> list[MedicalRecordSummary]:
        payload = await self.api.request("GET", "/medical-records")
        return parse_payload(list[MedicalRecordSummary], payload)

    async def list_patient_records(self, patient_id: int) -> list[MedicalRecordSummary]:
        payload = await self.api.request("GET", f"/medical-records/patient/{patient_id}")
        return parse_payload(list[MedicalRecordSummary], payload)

    async def get_record(self, record_id: int) -> MedicalRecordDetail:
        """Record detail, including the embedded prescription summary if one was issued."""
        payload = await self.api.request("GET", f"/medical-records/{record_id}")
        return parse_payload(MedicalRecordDetail, payload)

    async def search_patients(self, name: str) -> list[PatientLookup]:
        name = (name or "").strip()
        if not name:
            raise ValidationGap("Enter a patient name to search.")
        payload = await self.api.request(
            "GET", "/medical-records/patients", params={"name": name}
        )
        return parse_payload(list[PatientLookup], payload)

    async def search_medicines(self, keyword: str) -> list[MedicineSearchResult]:
        keyword = (keyword or "").strip()
        if not keyword:
            raise ValidationGap("Enter a medicine name to search.")
        payload = await self.api.request("GET", "/medicines", params={"keyword": keyword})
        return parse_payload(list[MedicineSearchResult], payload)

    async def create_record(self, record: MedicalRecordPayload) -> Optional[MedicalRecordDetail]:
        """
        Author a record. Any prescription it carries is issued as CREATED
        and must then be dispatched.

        Returns the created record when the server echoes it back.
        """
        payload = await self.api.request(
            "POST",
            "/medical-records",
            json=record.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        logger.info("Medical record created for patient %s", record.patient.name)
        if isinstance(payload, dict) and "recordId" in payload:
            return parse_payload(MedicalRecordDetail, payload)
        return None
