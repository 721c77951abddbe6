"""
Dashboard analytics endpoints.

    GET /api/{domain}/analytics -> {success, data: dashboard view}
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from core.analytics import Filters, derive_view
from core.config import AppConfig
from core.models import Domain
from core.observability import Timer, get_logger
from core.store import RecordStore
from core.validators import validate_date_range_days
from web.schemas import DashboardViewResponse
from ._deps import RECORDS_RATE_LIMIT, get_config, get_store, limiter

router = APIRouter(tags=["analytics"])
logger = get_logger(__name__)

# Look-back window the dashboards open with
DEFAULT_DAYS = {
    Domain.MANUFACTURING: 30,
    Domain.TESTING: 30,
    Domain.FIELD: 30,
    Domain.SALES: 365,
}


def _register_analytics_route(domain: Domain) -> None:
    """Add GET /{domain}/analytics for one record domain."""

    async def get_dashboard_view(
        request: Request,
        days: Optional[int] = Query(None, description="Look-back window in days (1-365)"),
        store: RecordStore = Depends(get_store),
        config: AppConfig = Depends(get_config),
    ):
        window = validate_date_range_days(DEFAULT_DAYS[domain] if days is None else days)
        selections = {
            name: request.query_params[name]
            for name in domain.filter_fields
            if name in request.query_params
        }

        records = await store.list_recent(domain)
        with Timer(f"derive_view:{domain.value}", logger):
            view = derive_view(
                domain,
                records,
                Filters(date_range_days=window, selections=selections),
                timezone_name=config.analytics.timezone,
                unit_price=config.analytics.unit_price,
                top_n=config.analytics.top_n,
            )
        return {"success": True, "data": view.to_dict()}

    # slowapi keys limits by function name
    get_dashboard_view.__name__ = get_dashboard_view.__qualname__ = f"get_{domain.value}_dashboard_view"

    router.add_api_route(
        f"/{domain.value}/analytics",
        limiter.limit(RECORDS_RATE_LIMIT)(get_dashboard_view),
        methods=["GET"],
        response_model=DashboardViewResponse,
        summary=f"{domain.display_name} dashboard",
        description=(
            "KPIs, breakdowns, rankings and daily series. Categorical filters "
            f"are query parameters named after the record field, e.g. "
            f"/api/{domain.value}/analytics?{domain.filter_fields[0]}=..."
        ),
    )


for _domain in Domain:
    _register_analytics_route(_domain)
