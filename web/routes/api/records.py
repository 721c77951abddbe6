"""
Record endpoints: create and list for each domain, plus recent activity.

    POST /api/{domain}   -> 201 {success, data: record}
    GET  /api/{domain}   -> {success, data: records (newest first, <= 100)}
    GET  /api/recent     -> {success, data: {domain: latest records}}
"""
import asyncio
from typing import Type

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from core.models import Domain
from core.observability import get_logger
from core.store import RecordStore
from web.schemas import (
    CREATE_MODELS,
    RecentRecordsResponse,
    RecordListResponse,
    RecordResponse,
)
from ._deps import RECORDS_RATE_LIMIT, get_store, limiter

router = APIRouter(tags=["records"])
logger = get_logger(__name__)


@router.get("/recent", response_model=RecentRecordsResponse)
@limiter.limit(RECORDS_RATE_LIMIT)
async def get_recent_records(
    request: Request,
    limit: int = Query(5, ge=1, le=100, description="Records per domain"),
    store: RecordStore = Depends(get_store),
):
    """Latest records of every domain (recent-activity page)."""
    domains = list(Domain)
    results = await asyncio.gather(*(store.list_recent(d, limit) for d in domains))
    return {
        "success": True,
        "data": {domain.value: records for domain, records in zip(domains, results)},
    }


def _register_domain_routes(domain: Domain, body_model: Type[BaseModel]) -> None:
    """Add POST and GET /{domain} for one record domain."""

    async def create_record(
        request: Request,
        body: body_model,
        store: RecordStore = Depends(get_store),
    ):
        record = await store.insert(domain, body.model_dump())
        logger.info(
            f"Created {domain.value} record",
            extra={"table": domain.table, "record_id": record["id"]}
        )
        return {"success": True, "data": record}

    async def list_records(
        request: Request,
        store: RecordStore = Depends(get_store),
    ):
        records = await store.list_recent(domain)
        return {"success": True, "data": records}

    # slowapi keys limits by function name
    create_record.__name__ = create_record.__qualname__ = f"create_{domain.value}_record"
    list_records.__name__ = list_records.__qualname__ = f"list_{domain.value}_records"

    router.add_api_route(
        f"/{domain.value}",
        limiter.limit(RECORDS_RATE_LIMIT)(create_record),
        methods=["POST"],
        status_code=201,
        response_model=RecordResponse,
        summary=f"Create a {domain.display_name.lower()} record",
    )
    router.add_api_route(
        f"/{domain.value}",
        limiter.limit(RECORDS_RATE_LIMIT)(list_records),
        methods=["GET"],
        response_model=RecordListResponse,
        summary=f"List recent {domain.display_name.lower()} records",
    )


for _domain, _model in CREATE_MODELS.items():
    _register_domain_routes(_domain, _model)
