"""
Pydantic request/response models for API endpoints.

Request models only check presence and JSON type of each field; range and
length rules belong to the data-entry forms (core.validators.validate_form).
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from core.models import Domain


# ═══════════════════════════════════════════════════════════════════════════════
# RECORD BODIES
# ═══════════════════════════════════════════════════════════════════════════════

class ManufacturingCreate(BaseModel):
    """Manufacturing record as submitted by the data-entry form."""
    production_count: int
    scrap_count: int
    shift: str
    machine_id: str


class BatchTestCreate(BaseModel):
    """Testing record as submitted by the data-entry form."""
    batch_id: str
    passed: int
    failed: int
    defect_type: str


class FieldCreate(BaseModel):
    """Field-service record as submitted by the data-entry form."""
    customer_issue: str
    solution_given: str
    technician_name: str


class SalesCreate(BaseModel):
    """Sales record as submitted by the data-entry form."""
    order_id: str
    customer_name: str
    quantity: int
    dispatch_date: str = Field(description="Dispatch date (YYYY-MM-DD)")
    payment_status: str


CREATE_MODELS = {
    Domain.MANUFACTURING: ManufacturingCreate,
    Domain.TESTING: BatchTestCreate,
    Domain.FIELD: FieldCreate,
    Domain.SALES: SalesCreate,
}


# ═══════════════════════════════════════════════════════════════════════════════
# ENVELOPES
# ═══════════════════════════════════════════════════════════════════════════════

class RecordResponse(BaseModel):
    """Single stored record."""
    success: bool = True
    data: Dict[str, Any]


class RecordListResponse(BaseModel):
    """Records, newest first."""
    success: bool = True
    data: List[Dict[str, Any]]


class RecentRecordsResponse(BaseModel):
    """Latest records of every domain, keyed by domain name."""
    success: bool = True
    data: Dict[str, List[Dict[str, Any]]]


class ErrorResponse(BaseModel):
    """Uniform error envelope."""
    success: bool = False
    error: str


# ═══════════════════════════════════════════════════════════════════════════════
# ANALYTICS
# ═══════════════════════════════════════════════════════════════════════════════

class DashboardViewData(BaseModel):
    """Derived dashboard view (see core.analytics.DashboardView)."""
    domain: str
    record_count: int
    kpis: Dict[str, Union[int, float]]
    groups: Dict[str, List[Dict[str, Any]]]
    top: Dict[str, List[Dict[str, Any]]]
    series: List[Dict[str, Any]]
    extras: Dict[str, List[Dict[str, Any]]] = {}
    options: Dict[str, List[str]] = {}


class DashboardViewResponse(BaseModel):
    success: bool = True
    data: DashboardViewData


# ═══════════════════════════════════════════════════════════════════════════════
# CHAT
# ═══════════════════════════════════════════════════════════════════════════════

class ChatRequest(BaseModel):
    """Question for the assistant."""
    message: str = Field(..., max_length=2000)


class ChatResponse(BaseModel):
    """Assistant answer, returned verbatim from the model."""
    answer: str


# ═══════════════════════════════════════════════════════════════════════════════
# HEALTH
# ═══════════════════════════════════════════════════════════════════════════════

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(description="healthy or unhealthy")
    database: str = Field(description="Store connectivity")
    timestamp: datetime = Field(description="Current store time (UTC)")
    version: str
    uptime_seconds: int
    latency_ms: Optional[float] = None
