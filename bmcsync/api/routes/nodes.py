"""Node inventory API endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query

from bmcsync.api.dependencies import get_store
from bmcsync.api.schemas import (
    ApiListResponse,
    ApiResponse,
    NodeDetailResponse,
    NodeResponse,
)
from bmcsync.db.store import NodeStore

router = APIRouter()


@router.get("/nodes", response_model=ApiListResponse[NodeResponse])
async def list_nodes(
    active: bool | None = Query(None, description="Filter by active flag"),
    store: NodeStore = Depends(get_store),
):
    """List nodes in the inventory."""
    nodes = await store.list_nodes(active=active)
    return ApiListResponse[NodeResponse](
        data=[NodeResponse.model_validate(n) for n in nodes],
        total=len(nodes),
    )


@router.get("/nodes/{uuid}", response_model=ApiResponse[NodeResponse])
async def get_node(uuid: str, store: NodeStore = Depends(get_store)):
    """Get node by UUID."""
    node = await store.get_node(uuid)
    if not node:
        raise HTTPException(status_code=404, detail="Node not found")
    return ApiResponse[NodeResponse](data=NodeResponse.model_validate(node))


@router.get("/nodes/{uuid}/detail", response_model=ApiResponse[NodeDetailResponse])
async def get_node_detail(uuid: str, store: NodeStore = Depends(get_store)):
    """Get processor details of a node."""
    detail = await store.get_node_detail(uuid)
    if not detail:
        raise HTTPException(status_code=404, detail="Node detail not found")
    return ApiResponse[NodeDetailResponse](data=NodeDetailResponse.model_validate(detail))
