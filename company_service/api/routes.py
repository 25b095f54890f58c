"""Async FastAPI routes for company records.

- GET is public
- POST, PATCH and DELETE require a bearer token
- Every call runs under REQUEST_TIMEOUT_SECONDS up to its write; an
  expired call is cancelled before anything is stored and answered with 504
"""
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Request, Response, status
from pydantic import BaseModel, ConfigDict

from company_service.core.auth import Principal, require_authorization
from company_service.core.logging import get_logger, LogTimer
from company_service.domain.company import Company
from company_service.services.companies import CompanyService

logger = get_logger(__name__)
router = APIRouter(prefix="/companies", tags=["companies"])


class CompanyCreateRequest(BaseModel):
    """Body of POST /companies. Any ``id`` sent by the client is ignored."""
    name: str
    description: Optional[str] = None
    employees: int
    registered: bool
    type: str

    model_config = ConfigDict(
        strict=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "name": "Acme",
                "description": "Makers of everything",
                "employees": 10,
                "registered": True,
                "type": "Corporations",
            }
        },
    )


def get_company_service(request: Request) -> CompanyService:
    """Service instance built by the application lifespan."""
    return request.app.state.company_service


# -----------------
# COMPANY ENDPOINTS
# -----------------

@router.post("", response_model=Company, status_code=status.HTTP_201_CREATED)
async def create_company(
    req: CompanyCreateRequest,
    principal: Principal = Depends(require_authorization),
    service: CompanyService = Depends(get_company_service),
):
    """Create a company.

    Requires: Authentication

    Example:
        POST /companies
        {"name": "Acme", "employees": 10, "registered": true, "type": "Corporations"}
    """
    with LogTimer(logger, "create_company"):
        candidate = Company(**req.model_dump())
        return await service.create(candidate)


@router.get("/{company_id}", response_model=Company)
async def get_company(
    company_id: UUID,
    service: CompanyService = Depends(get_company_service),
):
    """Return a company by id.

    Authentication: None
    """
    with LogTimer(logger, "get_company"):
        return await service.get(company_id)


@router.patch("/{company_id}", response_model=Company)
async def patch_company(
    company_id: UUID,
    fields: Dict[str, Any] = Body(...),
    principal: Principal = Depends(require_authorization),
    service: CompanyService = Depends(get_company_service),
):
    """Partially update a company.

    Only the fields present in the body change. ``"description": null``
    clears the description. ``id`` in the body is ignored.

    Requires: Authentication
    """
    with LogTimer(logger, "patch_company"):
        return await service.patch(company_id, fields)


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    company_id: UUID,
    principal: Principal = Depends(require_authorization),
    service: CompanyService = Depends(get_company_service),
):
    """Delete a company.

    Requires: Authentication
    """
    with LogTimer(logger, "delete_company"):
        await service.delete(company_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
