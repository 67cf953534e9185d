"""Inventory reconciliation passes.

Three independent passes refresh the node inventory from the BMCs:
- full: UUID, BMC/PXE MAC addresses, CPU cores and memory
- status: power state
- detail: processor model, processor count and thread count

Nodes are visited one at a time. The probes for a node run in a fixed
order and stop at the first failure, so a node is either fully written
or left untouched. A failed node is logged and skipped; only a failure to
enumerate the active nodes aborts a pass.
"""
import logging
from datetime import datetime, timezone

from bmcsync.bmc.client import BMCClient
from bmcsync.config.settings import IpmiSettings
from bmcsync.core.errors import EnumerationError, InventoryError
from bmcsync.core.records import (
    NodeDetailRecord,
    NodeInventory,
    NodeStatus,
    PassResult,
    PassType,
)
from bmcsync.db.store import NodeStore

logger = logging.getLogger(__name__)


# ============== Collectors ==============


async def collect_full(
    client: BMCClient, bmc_ip: str, nic_no_bmc: int, nic_no_pxe: int
) -> NodeInventory:
    """Probe identity and hardware capability of one node."""
    serial_no = await client.get_serial_no(bmc_ip)
    uuid = await client.get_uuid(bmc_ip, serial_no)
    bmc_mac = await client.get_nic_mac(bmc_ip, nic_no_bmc, True)
    pxe_mac = await client.get_nic_mac(bmc_ip, nic_no_pxe, False)
    processors = await client.get_processors(bmc_ip, serial_no)
    cpu_cores = await client.get_processors_cores(bmc_ip, serial_no, processors)
    memory = await client.get_total_system_memory(bmc_ip, serial_no)

    return NodeInventory(
        uuid=uuid,
        bmc_ip=bmc_ip,
        bmc_mac_addr=bmc_mac,
        pxe_mac_addr=pxe_mac,
        cpu_cores=cpu_cores,
        memory=memory,
    )


async def collect_status(client: BMCClient, uuid: str, bmc_ip: str) -> NodeStatus:
    """Probe the power state of one node."""
    serial_no = await client.get_serial_no(bmc_ip)
    power_state = await client.get_power_state(bmc_ip, serial_no)
    return NodeStatus(uuid=uuid, bmc_ip=bmc_ip, status=power_state)


async def collect_detail(
    client: BMCClient, uuid: str, bmc_ip: str
) -> NodeDetailRecord:
    """Probe processor model and topology of one node."""
    serial_no = await client.get_serial_no(bmc_ip)
    model = await client.get_processor_model(bmc_ip, serial_no)
    processors = await client.get_processors(bmc_ip, serial_no)
    threads = await client.get_processors_threads(bmc_ip, serial_no, processors)

    return NodeDetailRecord(
        node_uuid=uuid,
        cpu_model=model,
        cpu_processors=processors,
        cpu_threads=threads,
    )


# ============== Pass runners ==============


class InventoryService:
    """Runs the reconciliation passes against one store and one BMC client."""

    def __init__(self, store: NodeStore, client: BMCClient, ipmi: IpmiSettings):
        self.store = store
        self.client = client
        self.ipmi = ipmi

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _skip(self, result: PassResult, bmc_ip: str, error: Exception) -> None:
        if isinstance(error, InventoryError):
            logger.warning(f"{result.pass_type.value} pass: skipping {bmc_ip}: {error}")
        else:
            logger.exception(
                f"{result.pass_type.value} pass: unexpected error on {bmc_ip}: {error}"
            )
        result.failed.append(bmc_ip)

    def _abort(self, result: PassResult, error: EnumerationError) -> PassResult:
        logger.error(f"{result.pass_type.value} pass aborted: {error}")
        result.aborted = True
        result.finished_at = self._now()
        return result

    def _finish(self, result: PassResult) -> PassResult:
        result.finished_at = self._now()
        logger.info(
            f"{result.pass_type.value} pass finished: "
            f"{result.updated_count} updated, {len(result.failed)} skipped"
        )
        return result

    async def update_all_nodes(self) -> PassResult:
        """Refresh identity and hardware fields of every active node.

        Power state is left to the status pass.
        """
        result = PassResult(pass_type=PassType.FULL, started_at=self._now())

        try:
            bmc_ips = await self.store.list_active_bmc_ips()
        except EnumerationError as e:
            return self._abort(result, e)

        for bmc_ip in bmc_ips:
            try:
                record = await collect_full(
                    self.client,
                    bmc_ip,
                    self.ipmi.baseboard_nic_no_bmc,
                    self.ipmi.baseboard_nic_no_pxe,
                )
                await self._reconcile_inventory(record)
            except Exception as e:
                self._skip(result, bmc_ip, e)
                continue
            result.updated.append(record)

        return self._finish(result)

    async def update_status_nodes(self) -> PassResult:
        """Refresh the power status of every active node."""
        result = PassResult(pass_type=PassType.STATUS, started_at=self._now())

        try:
            nodes = await self.store.list_active_nodes()
        except EnumerationError as e:
            return self._abort(result, e)

        for uuid, bmc_ip in nodes:
            try:
                record = await collect_status(self.client, uuid, bmc_ip)
                await self._reconcile_status(record)
            except Exception as e:
                self._skip(result, bmc_ip, e)
                continue
            result.updated.append(record)

        return self._finish(result)

    async def update_nodes_detail(self) -> PassResult:
        """Refresh the processor details of every active node."""
        result = PassResult(pass_type=PassType.DETAIL, started_at=self._now())

        try:
            nodes = await self.store.list_active_nodes()
        except EnumerationError as e:
            return self._abort(result, e)

        for uuid, bmc_ip in nodes:
            try:
                record = await collect_detail(self.client, uuid, bmc_ip)
                await self._reconcile_detail(record)
            except Exception as e:
                self._skip(result, bmc_ip, e)
                continue
            result.updated.append(record)

        return self._finish(result)

    # ============== Reconcilers ==============

    async def _reconcile_inventory(self, record: NodeInventory) -> None:
        rows = await self.store.update_node_inventory(record)
        if self.ipmi.debug:
            logger.info(f"Updated inventory of node {record.uuid} ({rows} row)")

    async def _reconcile_status(self, record: NodeStatus) -> None:
        rows = await self.store.update_node_status(record.uuid, record.status)
        if self.ipmi.debug:
            logger.info(f"Updated status of node {record.uuid} to {record.status} ({rows} row)")

    async def _reconcile_detail(self, record: NodeDetailRecord) -> None:
        # node_detail rows are not created by provisioning, so look first
        if not await self.store.node_detail_exists(record.node_uuid):
            logger.info(f"Inserting not existing new node_detail for {record.node_uuid}")
            await self.store.insert_node_detail(record)
            return

        rows = await self.store.update_node_detail(record)
        if self.ipmi.debug:
            logger.info(f"Updated node_detail of node {record.node_uuid} ({rows} row)")
