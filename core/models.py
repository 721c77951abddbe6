"""
Domain models for operations records.

Defines the four record domains (manufacturing, testing, field service,
sales) with their tables and fields. These definitions are the single
source of truth for the store schema, request bodies, analytics filters
and the assistant's data snapshot.
"""
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


# ═══════════════════════════════════════════════════════════════════════════════
# FIELD DEFINITIONS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FieldSpec:
    """A user-entered column of a record table."""
    name: str
    kind: str  # "int", "text" or "date"
    max_length: Optional[int] = None
    min_value: int = 0

    @property
    def sql_type(self) -> str:
        return "INTEGER" if self.kind == "int" else "VARCHAR"


MANUFACTURING_FIELDS = (
    FieldSpec("production_count", "int"),
    FieldSpec("scrap_count", "int"),
    FieldSpec("shift", "text", max_length=50),
    FieldSpec("machine_id", "text", max_length=50),
)

TESTING_FIELDS = (
    FieldSpec("batch_id", "text", max_length=50),
    FieldSpec("passed", "int"),
    FieldSpec("failed", "int"),
    FieldSpec("defect_type", "text", max_length=100),
)

FIELD_SERVICE_FIELDS = (
    FieldSpec("customer_issue", "text", max_length=500),
    FieldSpec("solution_given", "text", max_length=500),
    FieldSpec("technician_name", "text", max_length=100),
)

SALES_FIELDS = (
    FieldSpec("order_id", "text", max_length=50),
    FieldSpec("customer_name", "text", max_length=100),
    FieldSpec("quantity", "int", min_value=1),
    FieldSpec("dispatch_date", "date"),
    FieldSpec("payment_status", "text", max_length=50),
)


# ═══════════════════════════════════════════════════════════════════════════════
# DOMAINS
# ═══════════════════════════════════════════════════════════════════════════════

class Domain(str, Enum):
    """Record domains exposed under /api/{domain}."""
    MANUFACTURING = "manufacturing"
    TESTING = "testing"
    FIELD = "field"
    SALES = "sales"

    @property
    def table(self) -> str:
        """Store table name."""
        return f"{self.value}_records"

    @property
    def fields(self) -> Tuple[FieldSpec, ...]:
        return _FIELDS[self]

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def numeric_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.kind == "int"]

    @property
    def filter_fields(self) -> Tuple[str, ...]:
        """Categorical fields the dashboard can filter on."""
        return _FILTER_FIELDS[self]

    @property
    def display_name(self) -> str:
        names = {
            Domain.MANUFACTURING: "Manufacturing",
            Domain.TESTING: "Testing",
            Domain.FIELD: "Field Service",
            Domain.SALES: "Sales",
        }
        return names[self]


_FIELDS = {
    Domain.MANUFACTURING: MANUFACTURING_FIELDS,
    Domain.TESTING: TESTING_FIELDS,
    Domain.FIELD: FIELD_SERVICE_FIELDS,
    Domain.SALES: SALES_FIELDS,
}

_FILTER_FIELDS = {
    Domain.MANUFACTURING: ("shift", "machine_id"),
    Domain.TESTING: ("defect_type", "batch_id"),
    Domain.FIELD: ("technician_name",),
    Domain.SALES: ("payment_status", "customer_name"),
}


# ═══════════════════════════════════════════════════════════════════════════════
# ROW CONVERSION
# ═══════════════════════════════════════════════════════════════════════════════

def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a record timestamp into an aware UTC datetime.

    Accepts datetime objects (naive values are treated as UTC) and ISO 8601
    strings, including the trailing "Z" form.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def record_from_row(
    domain: Domain,
    columns: Sequence[str],
    row: Sequence[Any]
) -> Dict[str, Any]:
    """Build a JSON-ready record dict from a store row."""
    record = dict(zip(columns, row))
    record["created_at"] = parse_timestamp(record.get("created_at"))
    if isinstance(record.get("dispatch_date"), date):
        record["dispatch_date"] = record["dispatch_date"].isoformat()
    return record


def record_to_json(record: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize a record for the assistant's prompt (datetimes as ISO text)."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in record.items()
    }
