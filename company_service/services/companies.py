"""Company mutation orchestration.

Coordinates validation, uniqueness checks, partial-update merging,
persistence and event emission for a single company operation.

Each operation keeps its intermediate state in memory until the single
persistence call. The operation deadline covers everything up to and
including that call; an expired deadline cancels the work before anything
is written. Events are published only after the call succeeds, outside the
deadline, and a publish failure never changes the operation's outcome.
"""
import asyncio
import uuid
from typing import Any, Awaitable, Dict, Mapping, Optional, TypeVar
from uuid import UUID

from company_service.core.errors import DuplicateNameError, OperationTimeoutError
from company_service.core.logging import get_logger
from company_service.domain.company import Company, validate_company
from company_service.domain.events import (
    COMPANY_CREATED,
    COMPANY_DELETED,
    COMPANY_UPDATED,
    company_payload,
    deleted_payload,
)
from company_service.domain.patch import ensure_patchable, merge_patch
from company_service.domain.ports import CompanyRepository, EventPublisher

logger = get_logger(__name__)

T = TypeVar("T")


class CompanyService:
    """Create, read, patch and delete companies.

    Holds no mutable state of its own, so one instance can serve any number
    of concurrent requests. Concurrent patches of the same record are
    last-write-wins.

    Example:
        >>> service = CompanyService(repository, publisher)
        >>> created = await service.create(Company(name="Acme", employees=10,
        ...                                        registered=True, type="Corporations"))
        >>> await service.patch(created.id, {"employees": 20})
    """

    def __init__(
        self,
        repository: CompanyRepository,
        publisher: EventPublisher,
        publish_timeout: Optional[float] = None,
        operation_timeout: Optional[float] = None,
    ):
        """Initialize service.

        Args:
            repository: Persistence port
            publisher: Event port
            publish_timeout: Seconds to wait for a publish before dropping it
                (None waits indefinitely)
            operation_timeout: Deadline in seconds for the storage steps of
                an operation (None waits indefinitely)
        """
        self.repository = repository
        self.publisher = publisher
        self.publish_timeout = publish_timeout
        self.operation_timeout = operation_timeout

    async def create(self, candidate: Company) -> Company:
        """Validate, persist and announce a new company.

        Any ``id`` on the candidate is replaced by a freshly minted one.

        Raises:
            ValidationError: If the candidate breaks an invariant
            DuplicateNameError: If the name is taken
            OperationTimeoutError: If the deadline expired before the insert
            StorageError: On persistence failure
        """
        company = await self._within_deadline(self._insert(candidate))

        logger.info(f"Company created: {company.name}", extra={"company_id": str(company.id)})
        await self._publish(COMPANY_CREATED, company_payload(company))
        return company

    async def get(self, company_id: UUID) -> Company:
        """Fetch a company.

        Raises:
            NotFoundError: If no company has this id
        """
        return await self._within_deadline(self.repository.get_by_id(company_id))

    async def patch(self, company_id: UUID, fields: Mapping[str, Any]) -> Company:
        """Merge a partial update into a company and persist it.

        The whole merged record is re-validated, not only the changed fields.

        Args:
            company_id: Target company
            fields: Decoded JSON object; ``id`` and unknown keys are ignored

        Raises:
            EmptyPatchError: If ``fields`` has no mutable key
            NotFoundError: If the company does not exist (or vanished)
            TypeMismatchError: If a field has the wrong kind
            DuplicateNameError: If the new name belongs to another company
            ValidationError: If the merged record breaks an invariant
            OperationTimeoutError: If the deadline expired before the update
            StorageError: On persistence failure
        """
        ensure_patchable(fields)

        candidate = await self._within_deadline(self._update(company_id, fields))

        logger.info(f"Company updated: {candidate.name}", extra={"company_id": str(company_id)})
        await self._publish(COMPANY_UPDATED, company_payload(candidate))
        return candidate

    async def delete(self, company_id: UUID) -> None:
        """Remove a company.

        Not idempotent in its signalling: a second delete of the same id
        raises ``NotFoundError``.

        Raises:
            NotFoundError: If the company does not exist (or vanished)
            OperationTimeoutError: If the deadline expired before the delete
            StorageError: On persistence failure
        """
        company = await self._within_deadline(self._remove(company_id))

        logger.info(f"Company deleted: {company.name}", extra={"company_id": str(company_id)})
        await self._publish(COMPANY_DELETED, deleted_payload(company))

    async def _insert(self, candidate: Company) -> Company:
        error = validate_company(candidate)
        if error:
            raise error

        existing = await self.repository.get_by_name(candidate.name)
        if existing is not None:
            raise DuplicateNameError(candidate.name)

        company = candidate.model_copy(update={"id": uuid.uuid4()})
        await self.repository.create(company)
        return company

    async def _update(self, company_id: UUID, fields: Mapping[str, Any]) -> Company:
        current = await self.repository.get_by_id(company_id)
        candidate = merge_patch(current, fields)

        if candidate.name != current.name:
            existing = await self.repository.get_by_name(candidate.name)
            if existing is not None and existing.id != company_id:
                raise DuplicateNameError(candidate.name)

        error = validate_company(candidate)
        if error:
            raise error

        await self.repository.update(candidate)
        return candidate

    async def _remove(self, company_id: UUID) -> Company:
        company = await self.repository.get_by_id(company_id)
        await self.repository.delete(company_id)
        return company

    async def _within_deadline(self, operation: Awaitable[T]) -> T:
        """Run the storage steps of an operation under ``operation_timeout``."""
        if self.operation_timeout is None:
            return await operation
        try:
            return await asyncio.wait_for(operation, timeout=self.operation_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Operation exceeded {self.operation_timeout}s deadline")
            raise OperationTimeoutError(self.operation_timeout)

    async def _publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Publish an event, logging and dropping any failure."""
        try:
            if self.publish_timeout is None:
                await self.publisher.publish(event_type, payload)
            else:
                await asyncio.wait_for(
                    self.publisher.publish(event_type, payload),
                    timeout=self.publish_timeout,
                )
        except asyncio.TimeoutError:
            logger.warning(
                f"Timed out publishing {event_type} after {self.publish_timeout}s",
                extra={"event_type": event_type},
            )
        except Exception as e:
            logger.warning(
                f"Failed to publish {event_type} event: {e}",
                extra={"event_type": event_type},
            )
