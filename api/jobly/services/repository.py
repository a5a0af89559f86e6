from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from jobly.core.config import get_settings
from jobly.services.errors import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)
from jobly.services.sql import sql_for_job_filters, sql_for_partial_update

logger = logging.getLogger(__name__)

# Logical (external) field name -> column name, for fields whose names differ.
JOB_COLUMN_MAP = {"companyHandle": "company_handle"}
JOB_UPDATABLE_FIELDS = {"title", "salary", "equity"}
JOB_RETURNING_SQL = "id, title, salary, equity, company_handle"
# Postgres integer columns are 32-bit.
MAX_JOB_ID = 2**31 - 1


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        command_timeout_seconds: float = 15.0,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout_seconds = command_timeout_seconds
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def ping(self) -> None:
        pool = await self._get_pool()
        try:
            await pool.fetchval("select 1")
        except (OSError, asyncpg.PostgresError) as exc:
            raise RepositoryUnavailableError("database unavailable") from exc

    async def create_job(
        self,
        *,
        title: str,
        salary: int | None,
        equity: Decimal | None,
        company_handle: str,
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                insert into jobs (title, salary, equity, company_handle)
                values ($1, $2, $3, $4)
                returning {JOB_RETURNING_SQL}
                """,
                title,
                salary,
                equity,
                company_handle,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryValidationError(f"duplicate job: {title}") from exc
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryValidationError(f"company not found: {company_handle}") from exc
        except (pg_exc.CheckViolationError, pg_exc.NotNullViolationError, asyncpg.DataError) as exc:
            raise RepositoryValidationError("invalid job data") from exc

        logger.info("job created id=%s company_handle=%s", row["id"], company_handle)
        return self._job_row_to_dict(row)

    async def list_jobs(
        self,
        *,
        title: str | None = None,
        min_salary: int | None = None,
        has_equity: bool | None = None,
    ) -> list[dict[str, Any]]:
        filters = sql_for_job_filters(title=title, min_salary=min_salary, has_equity=has_equity)
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                f"""
                select {JOB_RETURNING_SQL}
                from jobs
                {filters.where_sql}
                order by title asc, id asc
                """,
                *filters.values,
            )
        except asyncpg.DataError as exc:
            raise RepositoryValidationError("invalid job filter") from exc
        return [self._job_row_to_dict(row) for row in rows]

    async def get_job(self, job_id: Any) -> dict[str, Any]:
        normalized_id = self._coerce_job_id(job_id)
        if normalized_id is None:
            raise RepositoryNotFoundError(f"job not found: {job_id}")

        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            select {JOB_RETURNING_SQL}
            from jobs
            where id = $1
            """,
            normalized_id,
        )
        if not row:
            raise RepositoryNotFoundError(f"job not found: {job_id}")
        return self._job_row_to_dict(row)

    async def update_job(self, job_id: Any, patch: Mapping[str, Any]) -> dict[str, Any]:
        # An empty or disallowed patch is rejected regardless of the id.
        update = sql_for_partial_update(patch, JOB_COLUMN_MAP)
        disallowed = sorted(set(patch) - JOB_UPDATABLE_FIELDS)
        if disallowed:
            raise RepositoryValidationError(f"fields are not updatable: {', '.join(disallowed)}")

        normalized_id = self._coerce_job_id(job_id)
        if normalized_id is None:
            raise RepositoryNotFoundError(f"job not found: {job_id}")

        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                update jobs
                set {update.set_clause}
                where id = {update.id_placeholder}
                returning {JOB_RETURNING_SQL}
                """,
                *update.values,
                normalized_id,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryValidationError("update would duplicate an existing job") from exc
        except (pg_exc.CheckViolationError, pg_exc.NotNullViolationError, asyncpg.DataError) as exc:
            raise RepositoryValidationError("invalid job data") from exc

        if not row:
            raise RepositoryNotFoundError(f"job not found: {job_id}")
        logger.info("job updated id=%s fields=%s", normalized_id, ",".join(patch))
        return self._job_row_to_dict(row)

    async def remove_job(self, job_id: Any) -> int:
        normalized_id = self._coerce_job_id(job_id)
        if normalized_id is None:
            raise RepositoryNotFoundError(f"job not found: {job_id}")

        pool = await self._get_pool()
        row = await pool.fetchrow("delete from jobs where id = $1 returning id", normalized_id)
        if not row:
            raise RepositoryNotFoundError(f"job not found: {job_id}")
        logger.info("job removed id=%s", normalized_id)
        return normalized_id

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("JOBLY_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout_seconds,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _job_row_to_dict(row: Mapping[str, Any]) -> dict[str, Any]:
        equity = row["equity"]
        return {
            "id": int(row["id"]),
            "title": row["title"],
            "salary": row["salary"],
            "equity": None if equity is None else str(equity),
            "company_handle": row["company_handle"],
        }

    @staticmethod
    def _coerce_job_id(value: Any) -> int | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            job_id = value
        elif isinstance(value, str) and value.strip().isdecimal():
            job_id = int(value.strip())
        else:
            return None
        if job_id < 1 or job_id > MAX_JOB_ID:
            return None
        return job_id


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        command_timeout_seconds=settings.database_command_timeout_seconds,
    )
