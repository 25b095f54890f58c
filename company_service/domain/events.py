"""Mutation events emitted after a company change is committed."""
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, Field

from company_service.domain.company import Company

COMPANY_CREATED = "CompanyCreated"
COMPANY_UPDATED = "CompanyUpdated"
COMPANY_DELETED = "CompanyDeleted"


class EventEnvelope(BaseModel):
    """Wire wrapper for a published event.

    Attributes:
        type: Event name, also used as the message key
        payload: Event body
        timestamp: UTC time the envelope was built
    """
    type: str
    payload: Dict[str, Any]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def company_payload(company: Company) -> Dict[str, Any]:
    """Full-record payload for created/updated events."""
    return company.model_dump(mode="json")


def deleted_payload(company: Company) -> Dict[str, Any]:
    """Payload for a deleted company: id and name only."""
    return {"id": str(company.id), "name": company.name}
