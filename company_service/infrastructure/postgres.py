"""PostgreSQL company storage on an asyncpg connection pool.

The ``companies`` table carries the authoritative constraints: a UNIQUE name
(closing the race between the service's name probe and its write) and CHECKs
mirroring the domain rules.

For Docker / managed Postgres:
- Set DB_URL to the instance DSN
- Leave DB_AUTO_MIGRATE on to create the table at startup
"""
from typing import Optional
from uuid import UUID

import asyncpg

from company_service.core.config import Settings
from company_service.core.errors import DuplicateNameError, NotFoundError, StorageError
from company_service.core.logging import get_logger
from company_service.domain.company import Company
from company_service.domain.ports import CompanyRepository

logger = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS companies (
    id UUID PRIMARY KEY,
    name VARCHAR(15) NOT NULL UNIQUE,
    description VARCHAR(3000),
    employees INT NOT NULL CHECK (employees >= 0),
    registered BOOLEAN NOT NULL,
    type VARCHAR(50) NOT NULL CHECK (type IN ('Corporations', 'NonProfit', 'Cooperative', 'Sole Proprietorship')),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS update_companies_updated_at ON companies;
CREATE TRIGGER update_companies_updated_at
    BEFORE UPDATE ON companies
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();
"""

INSERT_SQL = """
INSERT INTO companies (id, name, description, employees, registered, type)
VALUES ($1, $2, $3, $4, $5, $6)
"""

SELECT_COLUMNS = "SELECT id, name, description, employees, registered, type FROM companies"

UPDATE_SQL = """
UPDATE companies
SET name = $1, description = $2, employees = $3, registered = $4, type = $5
WHERE id = $6
"""

DELETE_SQL = "DELETE FROM companies WHERE id = $1"

# Failures that mean "the database could not serve the request"
DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _hidden_dsn(dsn: str) -> str:
    """DSN without credentials, for logs."""
    return dsn.split("@")[-1]


def _affected_rows(status: str) -> int:
    """Row count from an asyncpg command tag such as ``UPDATE 1``.

    Raises:
        StorageError: If the tag carries no row count
    """
    try:
        return int(status.split()[-1])
    except (AttributeError, ValueError, IndexError) as e:
        raise StorageError(f"unexpected command status: {status!r}") from e


async def create_pool(settings: Settings) -> asyncpg.Pool:
    """Create and verify the connection pool.

    Raises:
        StorageError: If the database is unreachable
    """
    logger.info(f"Initializing PostgreSQL pool (hidden DSN): {_hidden_dsn(settings.database_url)}")
    try:
        pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
    except DRIVER_ERRORS as e:
        logger.critical(f"Failed to init PostgreSQL pool: {e}", exc_info=True)
        raise StorageError(f"PostgreSQL pool init error: {e}") from e

    logger.info(
        f"PostgreSQL pool ready. Min/Max size: {settings.db_pool_min_size}/{settings.db_pool_max_size}"
    )
    return pool


async def ensure_schema(pool: asyncpg.Pool) -> None:
    """Create the companies table, constraints and trigger if missing."""
    try:
        async with pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
    except DRIVER_ERRORS as e:
        raise StorageError(f"schema setup failed: {e}") from e
    logger.info("Database schema ensured")


def _to_company(row) -> Company:
    return Company(**dict(row))


class PostgresCompanyRepository(CompanyRepository):
    """Repository backed by the ``companies`` table."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def create(self, company: Company) -> None:
        try:
            await self.pool.execute(
                INSERT_SQL,
                company.id,
                company.name,
                company.description,
                company.employees,
                company.registered,
                company.type,
            )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateNameError(company.name) from e
        except DRIVER_ERRORS as e:
            logger.error(f"Insert failed: {e}", exc_info=True, extra={"company_id": str(company.id)})
            raise StorageError(f"insert failed: {e}") from e

    async def get_by_id(self, company_id: UUID) -> Company:
        try:
            row = await self.pool.fetchrow(f"{SELECT_COLUMNS} WHERE id = $1", company_id)
        except DRIVER_ERRORS as e:
            logger.error(f"Fetch by id failed: {e}", exc_info=True, extra={"company_id": str(company_id)})
            raise StorageError(f"fetch failed: {e}") from e

        if row is None:
            raise NotFoundError(company_id)
        return _to_company(row)

    async def get_by_name(self, name: str) -> Optional[Company]:
        try:
            row = await self.pool.fetchrow(f"{SELECT_COLUMNS} WHERE name = $1", name)
        except DRIVER_ERRORS as e:
            logger.error(f"Fetch by name failed: {e}", exc_info=True)
            raise StorageError(f"fetch failed: {e}") from e

        return _to_company(row) if row is not None else None

    async def update(self, company: Company) -> None:
        try:
            status = await self.pool.execute(
                UPDATE_SQL,
                company.name,
                company.description,
                company.employees,
                company.registered,
                company.type,
                company.id,
            )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateNameError(company.name) from e
        except DRIVER_ERRORS as e:
            logger.error(f"Update failed: {e}", exc_info=True, extra={"company_id": str(company.id)})
            raise StorageError(f"update failed: {e}") from e

        if _affected_rows(status) == 0:
            raise NotFoundError(company.id)

    async def delete(self, company_id: UUID) -> None:
        try:
            status = await self.pool.execute(DELETE_SQL, company_id)
        except DRIVER_ERRORS as e:
            logger.error(f"Delete failed: {e}", exc_info=True, extra={"company_id": str(company_id)})
            raise StorageError(f"delete failed: {e}") from e

        if _affected_rows(status) == 0:
            raise NotFoundError(company_id)

    async def ping(self) -> bool:
        try:
            return await self.pool.fetchval("SELECT 1") == 1
        except DRIVER_ERRORS as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    async def close(self) -> None:
        logger.info("Closing PostgreSQL pool...")
        await self.pool.close()
        logger.info("PostgreSQL pool closed.")
