from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from decimal import Decimal
from typing import Any, TypeVar

import pytest
from asyncpg import exceptions as pg_exc

from jobly.services.repository import (
    PostgresRepository,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

T = TypeVar("T")

JOB_ROW = {"id": 7, "title": "New Job", "salary": 100, "equity": Decimal("0.1"), "company_handle": "c1"}


class FakePool:
    def __init__(self, *, rows: list[dict[str, Any]] | None = None, error: Exception | None = None) -> None:
        self.rows = rows or []
        self.error = error
        self.queries: list[tuple[str, tuple[Any, ...]]] = []

    async def fetchrow(self, query: str, *args: Any) -> dict[str, Any] | None:
        self.queries.append((" ".join(query.split()), args))
        if self.error is not None:
            raise self.error
        return self.rows[0] if self.rows else None

    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        self.queries.append((" ".join(query.split()), args))
        if self.error is not None:
            raise self.error
        return self.rows


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def _repository(pool: FakePool | None = None) -> PostgresRepository:
    repository = PostgresRepository(
        database_url="postgresql://unused" if pool is not None else None,
        min_pool_size=1,
        max_pool_size=1,
    )
    repository._pool = pool  # type: ignore[assignment]
    return repository


def test_create_job_returns_row_with_decimal_string_equity() -> None:
    pool = FakePool(rows=[JOB_ROW])

    job = _run(
        _repository(pool).create_job(title="New Job", salary=100, equity=Decimal("0.1"), company_handle="c1")
    )

    assert job == {"id": 7, "title": "New Job", "salary": 100, "equity": "0.1", "company_handle": "c1"}
    query, args = pool.queries[0]
    assert query.startswith("insert into jobs (title, salary, equity, company_handle) values ($1, $2, $3, $4)")
    assert args == ("New Job", 100, Decimal("0.1"), "c1")


@pytest.mark.parametrize(
    ("error", "message"),
    [
        (pg_exc.UniqueViolationError("duplicate key value"), "duplicate job"),
        (pg_exc.ForeignKeyViolationError("violates foreign key"), "company not found"),
    ],
)
def test_create_job_maps_constraint_violations_to_bad_request(error: Exception, message: str) -> None:
    repository = _repository(FakePool(error=error))

    with pytest.raises(RepositoryValidationError, match=message):
        _run(repository.create_job(title="New Job", salary=100, equity=None, company_handle="c1"))


def test_list_jobs_without_filters_has_no_where_clause() -> None:
    pool = FakePool(rows=[JOB_ROW, {**JOB_ROW, "id": 8, "equity": None}])

    jobs = _run(_repository(pool).list_jobs())

    query, args = pool.queries[0]
    assert "where" not in query
    assert query.endswith("order by title asc, id asc")
    assert args == ()
    assert [job["equity"] for job in jobs] == ["0.1", None]


def test_list_jobs_binds_filter_values() -> None:
    pool = FakePool()

    assert _run(_repository(pool).list_jobs(title="dev", min_salary=20000, has_equity=True)) == []

    query, args = pool.queries[0]
    assert "where title ilike $1 and salary >= $2 and equity > 0" in query
    assert args == ("%dev%", 20000)


def test_list_jobs_maps_out_of_range_values_to_bad_request() -> None:
    repository = _repository(FakePool(error=pg_exc.DataError("value out of int32 range")))

    with pytest.raises(RepositoryValidationError, match="invalid job filter"):
        _run(repository.list_jobs(min_salary=3_000_000_000))


@pytest.mark.parametrize("job_id", [0, -3, "abc", "", "1.5", "\u00b2", 2**31, True])
def test_get_job_rejects_unusable_ids_without_querying(job_id: Any) -> None:
    pool = FakePool(rows=[JOB_ROW])

    with pytest.raises(RepositoryNotFoundError):
        _run(_repository(pool).get_job(job_id))
    assert pool.queries == []


def test_get_job_not_found() -> None:
    with pytest.raises(RepositoryNotFoundError):
        _run(_repository(FakePool()).get_job(7))


def test_get_job_accepts_path_string_ids() -> None:
    pool = FakePool(rows=[JOB_ROW])

    assert _run(_repository(pool).get_job("7"))["id"] == 7
    assert pool.queries[0][1] == (7,)


def test_update_job_builds_parameterized_statement() -> None:
    pool = FakePool(rows=[{**JOB_ROW, "title": "Updated Job", "salary": 200}])

    job = _run(_repository(pool).update_job("7", {"title": "Updated Job", "salary": 200}))

    query, args = pool.queries[0]
    assert query.startswith('update jobs set "title"=$1, "salary"=$2 where id = $3 returning')
    assert args == ("Updated Job", 200, 7)
    assert job["title"] == "Updated Job"
    assert job["company_handle"] == "c1"


def test_update_job_with_empty_patch_is_bad_request_before_store_access() -> None:
    # No database configured: reaching the store would raise RepositoryUnavailableError.
    repository = _repository()

    with pytest.raises(RepositoryValidationError, match="no data"):
        _run(repository.update_job(7, {}))
    with pytest.raises(RepositoryValidationError, match="no data"):
        _run(repository.update_job("not-an-id", {}))


@pytest.mark.parametrize("patch", [{"companyHandle": "c2"}, {"company_handle": "c2"}, {"id": 9, "title": "x"}])
def test_update_job_rejects_immutable_fields(patch: dict[str, Any]) -> None:
    with pytest.raises(RepositoryValidationError, match="not updatable"):
        _run(_repository().update_job(7, patch))


def test_update_job_not_found() -> None:
    with pytest.raises(RepositoryNotFoundError):
        _run(_repository(FakePool()).update_job(7, {"title": "Ghost"}))


def test_remove_job_deletes_by_id() -> None:
    pool = FakePool(rows=[{"id": 7}])

    assert _run(_repository(pool).remove_job("007")) == 7
    assert pool.queries == [("delete from jobs where id = $1 returning id", (7,))]


def test_remove_job_not_found() -> None:
    with pytest.raises(RepositoryNotFoundError):
        _run(_repository(FakePool()).remove_job(7))


def test_unconfigured_database_is_unavailable() -> None:
    with pytest.raises(RepositoryUnavailableError):
        _run(_repository().list_jobs())
