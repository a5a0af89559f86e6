from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# salary is a Postgres integer column.
MAX_SALARY = 2**31 - 1


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class JobOut(_CamelModel):
    id: int
    title: str
    salary: int | None = None
    equity: str | None = None
    company_handle: str


class JobEnvelope(BaseModel):
    job: JobOut


class JobListOut(BaseModel):
    jobs: list[JobOut] = Field(default_factory=list)


class JobDeletedOut(BaseModel):
    deleted: str


class JobCreateRequest(_CamelRequest):
    title: str = Field(min_length=1)
    salary: int | None = Field(default=None, ge=0, le=MAX_SALARY)
    equity: Decimal | None = Field(default=None, ge=0, le=1)
    company_handle: str = Field(min_length=1)


class JobUpdateRequest(_CamelRequest):
    title: str | None = Field(default=None, min_length=1)
    salary: int | None = Field(default=None, ge=0, le=MAX_SALARY)
    equity: Decimal | None = Field(default=None, ge=0, le=1)

    @field_validator("title")
    @classmethod
    def title_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("title may not be null")
        return value


class JobFilterQuery(BaseModel):
    # Aliases only: the snake_case field names are not accepted query keys.
    model_config = ConfigDict(alias_generator=to_camel, extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    min_salary: int | None = Field(default=None, ge=0, le=MAX_SALARY)
    has_equity: bool | None = None
