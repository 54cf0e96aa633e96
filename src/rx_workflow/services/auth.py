"""Login against the record API and role checks on the resulting session."""

import logging
from typing import Optional

from rx_workflow.exceptions import Unauthorized
from rx_workflow.schemas.session import AuthSession, LoginRequest, Role
from rx_workflow.services.api_client import ApiClient, parse_payload

logger = logging.getLogger(__name__)


async def login(api: ApiClient, email: str, password: str) -> AuthSession:
    """Exchange credentials for a bearer token and bind it to `api`."""
    body = LoginRequest(email=email, password=password)
    payload = await api.request(
        "POST", "/login", json=body.model_dump(by_alias=True), skip_auth=True
    )
    session = parse_payload(AuthSession, payload)
    if session.email is None:
        session = session.model_copy(update={"email": email})
    api.token = session.access_token
    logger.info("Signed in as %s (%s)", session.name, session.role.value)
    return session


def require_role(role: Optional[Role], required: Role, action: str) -> None:
    """Raise Unauthorized unless `role` is `required`."""
    if role is not required:
        raise Unauthorized(
            f"Only a {required.value.lower()} can {action}.",
            detail={"required_role": required.value, "role": role.value if role else None},
        )
