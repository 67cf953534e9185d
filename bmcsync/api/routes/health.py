"""Health endpoint."""
from fastapi import APIRouter, Depends

from bmcsync.api.dependencies import get_scheduler
from bmcsync.api.schemas import ApiResponse, SchedulerStatusResponse
from bmcsync.core.records import PassType
from bmcsync.core.scheduler import CHECK_ALL_JOB_ID, InventoryScheduler

router = APIRouter()


@router.get("/health", response_model=ApiResponse[SchedulerStatusResponse])
async def health(scheduler: InventoryScheduler = Depends(get_scheduler)):
    """Liveness plus scheduler and pass state."""
    running = scheduler.is_running()
    return ApiResponse[SchedulerStatusResponse](
        data=SchedulerStatusResponse(
            scheduler_running=running,
            next_check_all_at=scheduler.get_next_run_time(CHECK_ALL_JOB_ID) if running else None,
            passes_running={
                pass_type.value: scheduler.is_pass_running(pass_type)
                for pass_type in PassType
            },
        )
    )
