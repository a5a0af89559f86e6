from typing import Any, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from jobly.core.auth import Capability
from jobly.core.security import require_capability
from jobly.schemas.jobs import (
    JobCreateRequest,
    JobDeletedOut,
    JobEnvelope,
    JobFilterQuery,
    JobListOut,
    JobOut,
    JobUpdateRequest,
)
from jobly.services.repository import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

router = APIRouter()


def _validate(model: type[ModelT], data: Any, location: str) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(
            [{**error, "loc": (location, *error["loc"])} for error in exc.errors()]
        ) from exc


async def _read_body(request: Request, model: type[ModelT]) -> ModelT:
    # Parsed inside the handler so the capability dependency runs first.
    try:
        data = await request.json()
    except ValueError as exc:
        raise RequestValidationError(
            [{"loc": ("body",), "msg": "body must be valid JSON", "type": "json_invalid"}]
        ) from exc
    return _validate(model, data, "body")


@router.post("", response_model=JobEnvelope, status_code=status.HTTP_201_CREATED)
async def create_job(
    request: Request,
    _principal=Depends(require_capability(Capability.ADMIN)),
    repository=Depends(get_repository),
) -> JobEnvelope:
    payload = await _read_body(request, JobCreateRequest)
    try:
        row = await repository.create_job(
            title=payload.title,
            salary=payload.salary,
            equity=payload.equity,
            company_handle=payload.company_handle,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return JobEnvelope(job=JobOut(**row))


@router.get("", response_model=JobListOut)
async def list_jobs(
    request: Request,
    _principal=Depends(require_capability(Capability.PUBLIC)),
    repository=Depends(get_repository),
) -> JobListOut:
    filters = _validate(JobFilterQuery, dict(request.query_params), "query")

    try:
        rows = await repository.list_jobs(
            title=filters.title,
            min_salary=filters.min_salary,
            has_equity=filters.has_equity,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return JobListOut(jobs=[JobOut(**row) for row in rows])


@router.get("/{job_id}", response_model=JobEnvelope)
async def get_job(
    job_id: str,
    _principal=Depends(require_capability(Capability.PUBLIC)),
    repository=Depends(get_repository),
) -> JobEnvelope:
    try:
        row = await repository.get_job(job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobEnvelope(job=JobOut(**row))


@router.patch("/{job_id}", response_model=JobEnvelope)
async def patch_job(
    job_id: str,
    request: Request,
    _principal=Depends(require_capability(Capability.ADMIN)),
    repository=Depends(get_repository),
) -> JobEnvelope:
    payload = await _read_body(request, JobUpdateRequest)
    try:
        row = await repository.update_job(job_id, payload.model_dump(exclude_unset=True))
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobEnvelope(job=JobOut(**row))


@router.delete("/{job_id}", response_model=JobDeletedOut)
async def delete_job(
    job_id: str,
    _principal=Depends(require_capability(Capability.ADMIN)),
    repository=Depends(get_repository),
) -> JobDeletedOut:
    try:
        deleted_id = await repository.remove_job(job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobDeletedOut(deleted=str(deleted_id))
