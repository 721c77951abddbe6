"""
Dashboard analytics for operations records.

Turns a flat list of records (as returned by the record store or the
/api/{domain} endpoint) into the views the dashboards chart: KPI scalars,
categorical breakdowns, top-N rankings and per-day series.

Everything here is a pure function of (records, filters, now). Nothing
touches the store or the network, so a view is recomputed from whatever
snapshot the caller last fetched.

Usage:
    from core.analytics import Filters, derive_view

    view = derive_view(
        Domain.MANUFACTURING,
        records,
        Filters(date_range_days=30, selections={"shift": "morning"}),
    )
    view.kpis["efficiency"]
"""
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from core.exceptions import ValidationError
from core.models import Domain, parse_timestamp

Record = Mapping[str, Any]

# Selection value meaning "no filter" (the dashboards' "All" option)
ALL = "all"

# Metric source that counts records instead of summing a field
COUNT = "*"

DEFAULT_TOP_N = 10
DEFAULT_UNIT_PRICE = 100.0

# Fixed keyword list scanned in field-service issue descriptions
ISSUE_KEYWORDS = ("error", "broken", "not working", "slow", "down", "issue", "problem", "fault")
ISSUE_KEYWORDS_LIMIT = 8


@dataclass(frozen=True)
class Filters:
    """Dashboard filter state."""
    date_range_days: int = 30
    selections: Mapping[str, Optional[str]] = field(default_factory=dict)

    def active_selections(self) -> Dict[str, str]:
        """Selections that actually restrict the record set."""
        return {
            name: value for name, value in self.selections.items()
            if value not in (None, "", ALL)
        }


@dataclass
class DashboardView:
    """Derived view for one dashboard."""
    domain: str
    record_count: int
    kpis: Dict[str, float]
    groups: Dict[str, List[Dict[str, Any]]]
    top: Dict[str, List[Dict[str, Any]]]
    series: List[Dict[str, Any]]
    extras: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    options: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ═══════════════════════════════════════════════════════════════════════════════
# PRIMITIVES
# ═══════════════════════════════════════════════════════════════════════════════

def safe_ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    """numerator / denominator * scale, or 0.0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return numerator * scale / denominator


def capitalize(value: str) -> str:
    """Upper-case the first character only ("night shift" -> "Night shift")."""
    return value[:1].upper() + value[1:] if value else value


def filter_records(
    records: Iterable[Record],
    filters: Filters,
    now: datetime,
) -> List[Record]:
    """
    Keep records created within the window that match every selection.

    A record passes when created_at >= now - date_range_days and each
    active selection equals the record's field value. Records without a
    parseable created_at never pass.
    """
    cutoff = now - timedelta(days=filters.date_range_days)
    selections = filters.active_selections()

    result = []
    for record in records:
        created_at = parse_timestamp(record.get("created_at"))
        if created_at is None or created_at < cutoff:
            continue
        if any(record.get(name) != value for name, value in selections.items()):
            continue
        result.append(record)
    return result


def _accumulate(totals: Dict[str, float], record: Record, metrics: Mapping[str, str]) -> None:
    for name, source in metrics.items():
        totals[name] += 1 if source == COUNT else (record.get(source) or 0)


def group_records(
    records: Iterable[Record],
    key: str,
    metrics: Mapping[str, str],
    label: Optional[Callable[[str], str]] = None,
) -> List[Dict[str, Any]]:
    """
    Partition records by a categorical field and sum metrics per group.

    Args:
        records: Records to group
        key: Categorical field name
        metrics: Output name -> numeric field name (or COUNT)
        label: Optional display-name function for the group key

    Returns:
        One dict per group ({"key", "name", **metrics}) in order of first
        occurrence
    """
    groups: Dict[Any, Dict[str, float]] = {}
    for record in records:
        group_key = record.get(key)
        if group_key not in groups:
            groups[group_key] = {name: 0 for name in metrics}
        _accumulate(groups[group_key], record, metrics)

    return [
        {
            "key": group_key,
            "name": label(group_key) if label and group_key else group_key,
            **totals,
        }
        for group_key, totals in groups.items()
    ]


def rank_groups(
    groups: Sequence[Dict[str, Any]],
    metric: str,
    limit: int = DEFAULT_TOP_N,
) -> List[Dict[str, Any]]:
    """
    Sort groups descending by one metric and keep the first `limit`.

    The sort is stable: groups with equal values keep their
    first-encountered order.
    """
    return sorted(groups, key=lambda g: g[metric], reverse=True)[:limit]


def bucket_by_day(
    records: Iterable[Record],
    metrics: Mapping[str, str],
    tz: ZoneInfo,
) -> List[Dict[str, Any]]:
    """
    Sum metrics per calendar day of created_at in the display timezone.

    Buckets are labelled like "Oct 05" and returned in ascending date
    order. Days without records have no bucket.
    """
    days: Dict[date, Dict[str, float]] = {}
    for record in records:
        created_at = parse_timestamp(record.get("created_at"))
        if created_at is None:
            continue
        day = created_at.astimezone(tz).date()
        if day not in days:
            days[day] = {name: 0 for name in metrics}
        _accumulate(days[day], record, metrics)

    return [
        {"day": day.strftime("%b %d"), "date": day.isoformat(), **totals}
        for day, totals in sorted(days.items())
    ]


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
    except ValueError:
        return None


def bucket_by_month(
    records: Iterable[Record],
    date_field: str,
    metrics: Mapping[str, str],
) -> List[Dict[str, Any]]:
    """
    Sum metrics per month of a text date field ("Jan 2026" labels).

    Records whose date does not parse are skipped.
    """
    months: Dict[tuple, Dict[str, float]] = {}
    for record in records:
        parsed = _parse_date(record.get(date_field))
        if parsed is None:
            continue
        month = (parsed.year, parsed.month)
        if month not in months:
            months[month] = {name: 0 for name in metrics}
        _accumulate(months[month], record, metrics)

    return [
        {"month": date(year, month, 1).strftime("%b %Y"), **totals}
        for (year, month), totals in sorted(months.items())
    ]


def keyword_counts(
    records: Iterable[Record],
    text_field: str,
    keywords: Sequence[str] = ISSUE_KEYWORDS,
    limit: int = ISSUE_KEYWORDS_LIMIT,
) -> List[Dict[str, Any]]:
    """Count records whose text contains each keyword (case-insensitive)."""
    counts: Dict[str, int] = {}
    for record in records:
        text = (record.get(text_field) or "").lower()
        for keyword in keywords:
            if keyword in text:
                counts[keyword] = counts.get(keyword, 0) + 1

    ranked = [{"name": capitalize(k), "count": c} for k, c in counts.items()]
    return rank_groups(ranked, "count", limit)


def filter_options(records: Iterable[Record], fields: Sequence[str]) -> Dict[str, List[str]]:
    """Sorted distinct values of each categorical field (drop-down choices)."""
    records = list(records)
    return {
        name: sorted({r.get(name) for r in records if r.get(name) is not None})
        for name in fields
    }


# ═══════════════════════════════════════════════════════════════════════════════
# DOMAIN VIEWS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class _ViewContext:
    filters: Filters
    tz: ZoneInfo
    unit_price: float
    top_n: int


def _total(records: Sequence[Record], field_name: str) -> int:
    return sum(r.get(field_name) or 0 for r in records)


def _manufacturing(records: Sequence[Record], ctx: _ViewContext) -> DashboardView:
    metrics = {"production": "production_count", "scrap": "scrap_count"}
    total_production = _total(records, "production_count")
    total_scrap = _total(records, "scrap_count")

    kpis = {
        "total_production": total_production,
        "total_scrap": total_scrap,
        "efficiency": round(safe_ratio(total_production - total_scrap, total_production, 100), 2),
        "avg_production": round(safe_ratio(total_production, len(records)), 2),
    }
    machines = group_records(records, "machine_id", metrics)

    return DashboardView(
        domain=Domain.MANUFACTURING.value,
        record_count=len(records),
        kpis=kpis,
        groups={"shifts": group_records(records, "shift", metrics, label=capitalize)},
        top={"machines": rank_groups(machines, "production", ctx.top_n)},
        series=bucket_by_day(records, metrics, ctx.tz),
    )


def _testing(records: Sequence[Record], ctx: _ViewContext) -> DashboardView:
    total_passed = _total(records, "passed")
    total_failed = _total(records, "failed")
    total_tested = total_passed + total_failed

    kpis = {
        "total_passed": total_passed,
        "total_failed": total_failed,
        "total_tested": total_tested,
        "pass_rate": round(safe_ratio(total_passed, total_tested, 100), 2),
        "batches": len({r.get("batch_id") for r in records}),
    }
    defect_types = group_records(
        records, "defect_type", {"records": COUNT, "failed": "failed"}, label=capitalize
    )
    batches = group_records(records, "batch_id", {"passed": "passed", "failed": "failed"})

    return DashboardView(
        domain=Domain.TESTING.value,
        record_count=len(records),
        kpis=kpis,
        groups={"defect_types": defect_types},
        top={"batches": rank_groups(batches, "failed", ctx.top_n)},
        series=bucket_by_day(records, {"passed": "passed", "failed": "failed"}, ctx.tz),
    )


def _field_service(records: Sequence[Record], ctx: _ViewContext) -> DashboardView:
    total_issues = len(records)
    kpis = {
        "total_issues": total_issues,
        "unique_technicians": len({r.get("technician_name") for r in records}),
        "avg_issues_per_day": round(safe_ratio(total_issues, ctx.filters.date_range_days), 2),
        "total_solutions": total_issues,
    }
    technicians = group_records(records, "technician_name", {"issues": COUNT})

    return DashboardView(
        domain=Domain.FIELD.value,
        record_count=len(records),
        kpis=kpis,
        groups={},
        top={"technicians": rank_groups(technicians, "issues", ctx.top_n)},
        series=bucket_by_day(records, {"issues": COUNT}, ctx.tz),
        extras={"issue_keywords": keyword_counts(records, "customer_issue")},
    )


def _sales(records: Sequence[Record], ctx: _ViewContext) -> DashboardView:
    metrics = {"orders": COUNT, "quantity": "quantity"}
    total_orders = len(records)
    total_quantity = _total(records, "quantity")
    total_revenue = total_quantity * ctx.unit_price

    kpis = {
        "total_orders": total_orders,
        "total_quantity": total_quantity,
        "total_revenue": round(total_revenue, 2),
        "avg_order_value": round(safe_ratio(total_revenue, total_orders), 2),
    }

    customers = rank_groups(group_records(records, "customer_name", metrics), "quantity", ctx.top_n)
    for customer in customers:
        customer["revenue"] = round(customer["quantity"] * ctx.unit_price, 2)

    series = bucket_by_day(records, metrics, ctx.tz)
    for bucket in series:
        bucket["revenue"] = round(bucket["quantity"] * ctx.unit_price, 2)

    return DashboardView(
        domain=Domain.SALES.value,
        record_count=len(records),
        kpis=kpis,
        groups={"payment_statuses": group_records(records, "payment_status", metrics, label=capitalize)},
        top={"customers": customers},
        series=series,
        extras={"dispatch_months": bucket_by_month(records, "dispatch_date", metrics)},
    )


_BUILDERS = {
    Domain.MANUFACTURING: _manufacturing,
    Domain.TESTING: _testing,
    Domain.FIELD: _field_service,
    Domain.SALES: _sales,
}


def derive_view(
    domain: Domain,
    records: Iterable[Record],
    filters: Optional[Filters] = None,
    now: Optional[datetime] = None,
    *,
    timezone_name: str = "UTC",
    unit_price: float = DEFAULT_UNIT_PRICE,
    top_n: int = DEFAULT_TOP_N,
) -> DashboardView:
    """
    Build the dashboard view for one domain.

    Args:
        domain: Record domain
        records: Snapshot of records (any order)
        filters: Date window and categorical selections (default: 30 days)
        now: Reference time for the date window (default: current UTC time)
        timezone_name: Display timezone for day buckets
        unit_price: Placeholder price for the sales revenue KPI
        top_n: Size of ranking views

    Returns:
        DashboardView with KPIs, groups, rankings, series and filter options

    Raises:
        ValidationError: If a selection names a field the domain cannot
            be filtered on
    """
    filters = filters or Filters()
    for name in filters.selections:
        if name not in domain.filter_fields:
            raise ValidationError(
                name,
                f"Cannot filter {domain.value} records by this field; "
                f"expected one of {list(domain.filter_fields)}",
            )

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    records = list(records)
    ctx = _ViewContext(
        filters=filters,
        tz=ZoneInfo(timezone_name),
        unit_price=unit_price,
        top_n=top_n,
    )

    view = _BUILDERS[domain](filter_records(records, filters, now), ctx)
    view.options = filter_options(records, domain.filter_fields)
    return view
