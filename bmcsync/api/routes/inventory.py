"""On-demand reconciliation pass endpoints.

Each endpoint runs its pass to completion and returns the result. A pass
already in flight makes the request fail with 409 instead of queueing.
"""
from fastapi import APIRouter, Depends, HTTPException

from bmcsync.api.dependencies import get_scheduler
from bmcsync.api.schemas import ApiResponse, PassResultResponse
from bmcsync.core.records import PassType
from bmcsync.core.scheduler import InventoryScheduler

router = APIRouter()


async def _run(scheduler: InventoryScheduler, pass_type: PassType):
    result = await scheduler.run_pass(pass_type)
    if result is None:
        raise HTTPException(
            status_code=409,
            detail=f"{pass_type.value} pass is already running",
        )
    return ApiResponse[PassResultResponse](
        data=PassResultResponse.from_result(result),
        message=f"{result.updated_count} node(s) updated",
    )


@router.post("/inventory/full", response_model=ApiResponse[PassResultResponse])
async def run_full_pass(scheduler: InventoryScheduler = Depends(get_scheduler)):
    """Refresh identity and hardware of all active nodes."""
    return await _run(scheduler, PassType.FULL)


@router.post("/inventory/status", response_model=ApiResponse[PassResultResponse])
async def run_status_pass(scheduler: InventoryScheduler = Depends(get_scheduler)):
    """Refresh power status of all active nodes."""
    return await _run(scheduler, PassType.STATUS)


@router.post("/inventory/detail", response_model=ApiResponse[PassResultResponse])
async def run_detail_pass(scheduler: InventoryScheduler = Depends(get_scheduler)):
    """Refresh processor details of all active nodes."""
    return await _run(scheduler, PassType.DETAIL)
