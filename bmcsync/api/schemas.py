"""Pydantic schemas for API responses."""
from dataclasses import asdict
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from bmcsync.core.records import PassResult

T = TypeVar("T")


# ============== Node Schemas ==============


class NodeResponse(BaseModel):
    """Schema for node response."""

    model_config = ConfigDict(from_attributes=True)

    uuid: str
    bmc_ip: str
    bmc_mac_addr: str | None
    pxe_mac_addr: str | None
    cpu_cores: int | None
    memory: int | None
    status: str | None
    active: bool
    created_at: datetime
    updated_at: datetime


class NodeDetailResponse(BaseModel):
    """Schema for node detail response."""

    model_config = ConfigDict(from_attributes=True)

    node_uuid: str
    cpu_model: str | None
    cpu_processors: int | None
    cpu_threads: int | None


# ============== Inventory Schemas ==============


class PassResultResponse(BaseModel):
    """Outcome of one reconciliation pass."""

    pass_type: str
    started_at: datetime
    finished_at: datetime | None
    aborted: bool
    updated_count: int
    updated: list[dict[str, Any]]
    failed: list[str]

    @classmethod
    def from_result(cls, result: PassResult) -> "PassResultResponse":
        """Create response from a PassResult."""
        return cls(
            pass_type=result.pass_type.value,
            started_at=result.started_at,
            finished_at=result.finished_at,
            aborted=result.aborted,
            updated_count=result.updated_count,
            updated=[asdict(record) for record in result.updated],
            failed=list(result.failed),
        )


class SchedulerStatusResponse(BaseModel):
    """Scheduler and guard state."""

    scheduler_running: bool
    next_check_all_at: datetime | None
    passes_running: dict[str, bool]


# ============== Response Wrappers ==============


class ApiResponse(BaseModel, Generic[T]):
    """Generic API response wrapper."""

    success: bool = True
    data: T
    message: str | None = None


class ApiListResponse(BaseModel, Generic[T]):
    """Generic API list response wrapper."""

    success: bool = True
    data: list[T]
    total: int
