"""Domain model and validation rules for companies."""
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from company_service.core.errors import ValidationError

MAX_NAME_BYTES = 15
MAX_DESCRIPTION_CHARS = 3000


class CompanyType(str, Enum):
    """Legal form of a company. Values are matched exactly."""
    CORPORATIONS = "Corporations"
    NON_PROFIT = "NonProfit"
    COOPERATIVE = "Cooperative"
    SOLE_PROPRIETORSHIP = "Sole Proprietorship"


COMPANY_TYPES = frozenset(t.value for t in CompanyType)


class Company(BaseModel):
    """Company record.

    Field values are not range-checked on construction; call
    ``validate_company`` before persisting.

    Attributes:
        id: Identifier minted by the service on creation
        name: Unique display name (1-15 bytes)
        description: Optional free text (at most 3000 characters)
        employees: Head count, never negative
        registered: Whether the company is registered
        type: One of the ``CompanyType`` values
    """
    id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    employees: int
    registered: bool
    type: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "6f1c2a9e-3b1d-4f4e-9a57-1b2c3d4e5f60",
                "name": "Acme",
                "description": "Makers of everything",
                "employees": 10,
                "registered": True,
                "type": "Corporations",
            }
        }
    )


def validate_company(company: Company) -> Optional[ValidationError]:
    """Check a company against its invariants.

    Rules are checked in a fixed order and only the first failure is
    reported: name presence, name length, description length, employee
    count, type membership.

    Args:
        company: Candidate record (new or fully merged)

    Returns:
        ValidationError for the first violated rule, or None if valid
    """
    if not company.name:
        return ValidationError("name", "name is required")
    if len(company.name.encode("utf-8")) > MAX_NAME_BYTES:
        return ValidationError("name", f"name must be {MAX_NAME_BYTES} characters or fewer")

    if company.description is not None and len(company.description) > MAX_DESCRIPTION_CHARS:
        return ValidationError(
            "description",
            f"description must be {MAX_DESCRIPTION_CHARS} characters or fewer",
        )

    if company.employees < 0:
        return ValidationError("employees", "amount of employees cannot be negative")

    if company.type not in COMPANY_TYPES:
        return ValidationError("type", f"invalid company type: {company.type}")

    return None
