from enum import Enum
from typing import Optional

from pydantic import Field

from rx_workflow.schemas.base import WireModel


class Role(str, Enum):
    """Capability tag of the signed-in actor."""

    DOCTOR = "DOCTOR"
    PHARMACIST = "PHARMACIST"


class DoctorProfile(WireModel):
    doctor_id: int
    hospital_id: Optional[int] = None
    hospital_name: Optional[str] = None
    department_id: Optional[int] = None
    department_name: Optional[str] = None


class LoginRequest(WireModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthSession(WireModel):
    """Bearer token and identity returned by POST /login."""

    access_token: str = Field(..., min_length=1)
    role: Role
    name: str
    email: Optional[str] = None
    doctor_profile: Optional[DoctorProfile] = None
