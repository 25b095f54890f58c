"""In-memory company storage.

Used for local runs (``STORAGE_BACKEND=memory``) and tests. Enforces the same
uniqueness and not-found rules as the PostgreSQL adapter. Each method runs
without awaiting, so it is atomic with respect to other coroutines.
"""
from typing import Dict, Optional
from uuid import UUID

from company_service.core.errors import DuplicateNameError, NotFoundError
from company_service.core.logging import get_logger
from company_service.domain.company import Company
from company_service.domain.ports import CompanyRepository

logger = get_logger(__name__)


class InMemoryCompanyRepository(CompanyRepository):
    """Dict-backed repository keyed by id, with a name index.

    Stored records are copies; callers never share instances with the store.
    """

    def __init__(self):
        self._by_id: Dict[UUID, Company] = {}
        self._id_by_name: Dict[str, UUID] = {}
        logger.info("In-memory company repository initialized")

    def __len__(self) -> int:
        return len(self._by_id)

    async def create(self, company: Company) -> None:
        if company.name in self._id_by_name:
            raise DuplicateNameError(company.name)
        self._by_id[company.id] = company.model_copy()
        self._id_by_name[company.name] = company.id

    async def get_by_id(self, company_id: UUID) -> Company:
        company = self._by_id.get(company_id)
        if company is None:
            raise NotFoundError(company_id)
        return company.model_copy()

    async def get_by_name(self, name: str) -> Optional[Company]:
        company_id = self._id_by_name.get(name)
        if company_id is None:
            return None
        return self._by_id[company_id].model_copy()

    async def update(self, company: Company) -> None:
        stored = self._by_id.get(company.id)
        if stored is None:
            raise NotFoundError(company.id)

        holder = self._id_by_name.get(company.name)
        if holder is not None and holder != company.id:
            raise DuplicateNameError(company.name)

        del self._id_by_name[stored.name]
        self._id_by_name[company.name] = company.id
        self._by_id[company.id] = company.model_copy()

    async def delete(self, company_id: UUID) -> None:
        stored = self._by_id.pop(company_id, None)
        if stored is None:
            raise NotFoundError(company_id)
        del self._id_by_name[stored.name]
