"""
Route generator - the HTTP half of the generic CRUD dispatcher.

Builds one FastAPI ``APIRouter`` per RecordType from a single set of handler
factories. Every response body is a JSON object keyed by the collection name
(lists), the singular entity name (single records), the relationship name
(nested lists) or ``errors``; never a bare array.

Handlers are async only to read the request; the blocking database work is
pushed to the threadpool so slow queries do not stall other requests.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from coredata_rest.runtime.crud_service import CRUDService
from coredata_rest.runtime.pagination import PageParams, RequestParameterError, parse_list_params

logger = logging.getLogger("coredata.routes")


async def _parse_request_body(request: Request) -> dict[str, Any]:
    """Parse request body as JSON or form data.

    An empty body is an empty record. Anything that is not an object is a
    malformed request.
    """
    content_type = (request.headers.get("content-type") or "").lower()
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return {k: (None if v == "" else v) for k, v in form.items()}

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = await request.json()
    except ValueError as exc:
        raise RequestParameterError({"body": ["is not valid JSON"]}) from exc
    if not isinstance(body, dict):
        raise RequestParameterError({"body": ["must be a JSON object"]})
    return body


class RouteGenerator:
    """
    Generates the REST surface for every record type.

    Example:
        generator = RouteGenerator(services)
        for router in generator.generate_all_routes():
            app.include_router(router)
    """

    def __init__(self, services: Mapping[str, CRUDService]):
        """
        Args:
            services: CRUD services keyed by record key
        """
        self.services = services

    def generate_all_routes(self) -> list[APIRouter]:
        return [self.generate_routes(service) for service in self.services.values()]

    def generate_routes(self, service: CRUDService) -> APIRouter:
        """Build the router for one record type."""
        record_type = service.record_type
        collection = f"/{record_type.table_name}"
        member = f"{collection}/{{record_id}}"
        tag = record_type.entity_name

        router = APIRouter(tags=[tag])
        router.add_api_route(
            collection,
            self._list_handler(service),
            methods=["GET"],
            name=f"list_{record_type.table_name}",
        )
        router.add_api_route(
            collection,
            self._create_handler(service),
            methods=["POST"],
            name=f"create_{record_type.singular_name}",
            status_code=201,
        )
        router.add_api_route(
            member,
            self._read_handler(service),
            methods=["GET"],
            name=f"read_{record_type.singular_name}",
        )
        router.add_api_route(
            member,
            self._update_handler(service),
            methods=["PUT"],
            name=f"update_{record_type.singular_name}",
        )
        router.add_api_route(
            member,
            self._delete_handler(service),
            methods=["DELETE"],
            name=f"delete_{record_type.singular_name}",
        )
        for binding in record_type.to_many_relationships:
            router.add_api_route(
                f"{member}/{binding.name}",
                self._nested_list_handler(service, binding.name),
                methods=["GET"],
                name=f"list_{record_type.singular_name}_{binding.name}",
            )
        return router

    # -------------------------------------------------------------------------
    # Handler factories
    # -------------------------------------------------------------------------

    @staticmethod
    def _list_handler(service: CRUDService) -> Any:
        key = service.record_type.table_name

        async def list_records(request: Request) -> JSONResponse:
            params = parse_list_params(request.query_params)
            if isinstance(params, PageParams):
                records, total = await run_in_threadpool(service.list_page, params)
                return JSONResponse({key: records, "page": params.page, "total": total})
            records = await run_in_threadpool(service.list_slice, params)
            return JSONResponse({key: records})

        return list_records

    @staticmethod
    def _create_handler(service: CRUDService) -> Any:
        key = service.record_type.singular_name

        async def create_record(request: Request) -> JSONResponse:
            body = await _parse_request_body(request)
            record = await run_in_threadpool(service.create, body)
            return JSONResponse({key: record}, status_code=201)

        return create_record

    @staticmethod
    def _read_handler(service: CRUDService) -> Any:
        key = service.record_type.singular_name

        async def read_record(record_id: str) -> JSONResponse:
            record = await run_in_threadpool(service.read, record_id)
            return JSONResponse({key: record})

        return read_record

    @staticmethod
    def _update_handler(service: CRUDService) -> Any:
        key = service.record_type.singular_name

        async def update_record(record_id: str, request: Request) -> JSONResponse:
            body = await _parse_request_body(request)
            record = await run_in_threadpool(service.update, record_id, body)
            return JSONResponse({key: record})

        return update_record

    @staticmethod
    def _delete_handler(service: CRUDService) -> Any:
        key = service.record_type.singular_name

        async def delete_record(record_id: str) -> JSONResponse:
            record = await run_in_threadpool(service.delete, record_id)
            return JSONResponse({key: record})

        return delete_record

    @staticmethod
    def _nested_list_handler(service: CRUDService, relationship: str) -> Any:
        async def list_related(record_id: str) -> JSONResponse:
            records = await run_in_threadpool(service.list_related, record_id, relationship)
            return JSONResponse({relationship: records})

        return list_related
