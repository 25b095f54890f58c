"""Ports the company service depends on.

Adapters live in ``company_service.infrastructure``. The service only ever
talks to these abstract contracts.
"""
import abc
from typing import Any, Dict, Optional
from uuid import UUID

from company_service.domain.company import Company


class CompanyRepository(abc.ABC):
    """Durable storage for companies.

    Implementations must enforce name uniqueness themselves (not only rely on
    the service's probe) and report violations as ``DuplicateNameError``.
    Infrastructure failures are reported as ``StorageError``.
    """

    @abc.abstractmethod
    async def create(self, company: Company) -> None:
        """Insert a new record.

        Raises:
            DuplicateNameError: If the name is already taken
        """

    @abc.abstractmethod
    async def get_by_id(self, company_id: UUID) -> Company:
        """Fetch a record by id.

        Raises:
            NotFoundError: If no record has this id
        """

    @abc.abstractmethod
    async def get_by_name(self, name: str) -> Optional[Company]:
        """Fetch a record by exact name, or None when absent."""

    @abc.abstractmethod
    async def update(self, company: Company) -> None:
        """Replace all mutable fields of the record with ``company.id``.

        Raises:
            NotFoundError: If the record no longer exists
            DuplicateNameError: If the new name is held by another record
        """

    @abc.abstractmethod
    async def delete(self, company_id: UUID) -> None:
        """Physically remove a record.

        Raises:
            NotFoundError: If nothing was deleted
        """

    async def ping(self) -> bool:
        """Readiness probe."""
        return True

    async def close(self) -> None:
        """Release held resources."""


class EventPublisher(abc.ABC):
    """Best-effort notification of committed mutations."""

    @abc.abstractmethod
    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Send one event.

        Raises:
            PublishError: If the event could not be delivered
        """

    async def close(self) -> None:
        """Flush and release the transport."""
