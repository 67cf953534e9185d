"""Node inventory store.

Every write runs in its own session and commits on its own, so a failed
node never rolls back the nodes reconciled before it.
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bmcsync.core.errors import EnumerationError, PersistenceError
from bmcsync.core.records import NodeDetailRecord, NodeInventory
from bmcsync.db.models import Node, NodeDetail

logger = logging.getLogger(__name__)


class NodeStore:
    """Query and write primitives over the node and node_detail tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ============== Enumeration ==============

    async def list_active_bmc_ips(self) -> list[str]:
        """BMC addresses of all active nodes."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Node.bmc_ip)
                    .where(Node.active.is_(True))
                    .order_by(Node.bmc_ip)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise EnumerationError(f"Failed to list active nodes: {e}") from e

    async def list_active_nodes(self) -> list[tuple[str, str]]:
        """(uuid, bmc_ip) pairs of all active nodes."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Node.uuid, Node.bmc_ip)
                    .where(Node.active.is_(True))
                    .order_by(Node.bmc_ip)
                )
                return [(row.uuid, row.bmc_ip) for row in result.all()]
        except SQLAlchemyError as e:
            raise EnumerationError(f"Failed to list active nodes: {e}") from e

    # ============== Node writes ==============

    async def update_node_inventory(self, record: NodeInventory) -> int:
        """Overwrite the probed hardware fields of a node, keyed by UUID."""
        stmt = (
            update(Node)
            .where(Node.uuid == record.uuid)
            .values(
                bmc_mac_addr=record.bmc_mac_addr,
                pxe_mac_addr=record.pxe_mac_addr,
                cpu_cores=record.cpu_cores,
                memory=record.memory,
            )
        )
        return await self._execute_update(stmt, record.uuid)

    async def update_node_status(self, uuid: str, status: str) -> int:
        """Overwrite only the status field of a node."""
        stmt = update(Node).where(Node.uuid == uuid).values(status=status)
        return await self._execute_update(stmt, uuid)

    async def _execute_update(self, stmt, uuid: str) -> int:
        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                if result.rowcount == 0:
                    await db.rollback()
                    raise PersistenceError(f"No node with uuid {uuid}")
                await db.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update node {uuid}: {e}") from e

    # ============== Node detail ==============

    async def node_detail_exists(self, node_uuid: str) -> bool:
        """Check whether a node_detail row exists for the node."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(NodeDetail.node_uuid).where(
                        NodeDetail.node_uuid == node_uuid
                    )
                )
                return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to look up node_detail for {node_uuid}: {e}"
            ) from e

    async def insert_node_detail(self, record: NodeDetailRecord) -> None:
        """Create the node_detail row for a node."""
        try:
            async with self._session_factory() as db:
                db.add(
                    NodeDetail(
                        node_uuid=record.node_uuid,
                        cpu_model=record.cpu_model,
                        cpu_processors=record.cpu_processors,
                        cpu_threads=record.cpu_threads,
                    )
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to insert node_detail for {record.node_uuid}: {e}"
            ) from e

    async def update_node_detail(self, record: NodeDetailRecord) -> int:
        """Update the node_detail row of a node in place."""
        stmt = (
            update(NodeDetail)
            .where(NodeDetail.node_uuid == record.node_uuid)
            .values(
                cpu_model=record.cpu_model,
                cpu_processors=record.cpu_processors,
                cpu_threads=record.cpu_threads,
            )
        )
        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                await db.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to update node_detail for {record.node_uuid}: {e}"
            ) from e

    # ============== Reads for the API ==============

    async def list_nodes(self, active: bool | None = None) -> list[Node]:
        """List nodes, optionally filtered by the active flag."""
        query = select(Node).order_by(Node.bmc_ip)
        if active is not None:
            query = query.where(Node.active.is_(active))
        async with self._session_factory() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def get_node(self, uuid: str) -> Node | None:
        """Get a node by UUID."""
        async with self._session_factory() as db:
            return await db.get(Node, uuid)

    async def get_node_detail(self, node_uuid: str) -> NodeDetail | None:
        """Get the node_detail row of a node."""
        async with self._session_factory() as db:
            return await db.get(NodeDetail, node_uuid)
