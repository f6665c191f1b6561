"""
List query parameters.

Two mutually exclusive styles are accepted on collection endpoints:

* ``page`` / ``per_page`` - page slice plus page number and total count
* ``limit`` / ``offset`` - bare slice

Page style is selected as soon as either ``page`` or ``per_page`` is present.
Malformed or out-of-range values are request errors, never server errors.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from coredata_rest.runtime.sa_schema import MAX_SQL_INT

MAX_PAGE_SIZE = 100


class RequestParameterError(Exception):
    """Raised when a query parameter is malformed or out of bounds."""

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        super().__init__(f"Invalid parameter: {', '.join(sorted(errors))}")


class PageParams(BaseModel):
    """Pagination by page number."""

    page: int = Field(default=1, ge=1, le=MAX_SQL_INT)
    per_page: int = Field(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @model_validator(mode="after")
    def check_offset_range(self) -> PageParams:
        if self.offset > MAX_SQL_INT:
            raise ValueError("page is out of range")
        return self


class SliceParams(BaseModel):
    """Pagination by limit and offset."""

    limit: int = Field(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0, le=MAX_SQL_INT)

    model_config = ConfigDict(frozen=True, extra="ignore")


def _errors_by_param(exc: ValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        name = str(err["loc"][0]) if err["loc"] else "page"
        errors.setdefault(name, []).append(err["msg"])
    return errors


def parse_list_params(query: Mapping[str, str]) -> PageParams | SliceParams:
    """
    Validate list parameters from a query string mapping.

    Raises:
        RequestParameterError: If any parameter is malformed or out of range.
    """
    model: type[PageParams] | type[SliceParams]
    if "page" in query or "per_page" in query:
        model = PageParams
        keys = ("page", "per_page")
    else:
        model = SliceParams
        keys = ("limit", "offset")

    try:
        return model.model_validate({k: query[k] for k in keys if k in query})
    except ValidationError as exc:
        raise RequestParameterError(_errors_by_param(exc)) from exc
