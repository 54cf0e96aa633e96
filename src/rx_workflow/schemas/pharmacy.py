"""Pharmacy directory schemas."""

from typing import Optional

from pydantic import Field

from rx_workflow.schemas.base import WireModel


class PharmacySummary(WireModel):
    """A pharmacy that a prescription can be dispatched to."""

    id: int
    name: str = Field(..., min_length=1)
    address: str
    phone: Optional[str] = None
    hospital_id: Optional[int] = None
    hospital_name: Optional[str] = None


class DispatchRequest(WireModel):
    """Body of POST /prescriptions/{id}/dispatch."""

    pharmacy_id: int
