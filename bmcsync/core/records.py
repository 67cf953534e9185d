"""Candidate records assembled from BMC probes."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class PassType(str, Enum):
    """Reconciliation pass types. Each owns one overlap guard."""
    FULL = "full"
    STATUS = "status"
    DETAIL = "detail"


@dataclass
class NodeInventory:
    """Identity and hardware capability of one node."""
    uuid: str
    bmc_ip: str
    bmc_mac_addr: str
    pxe_mac_addr: str
    cpu_cores: int
    memory: int


@dataclass
class NodeStatus:
    """Power status of one node."""
    uuid: str
    bmc_ip: str
    status: str


@dataclass
class NodeDetailRecord:
    """Processor model and topology of one node."""
    node_uuid: str
    cpu_model: str
    cpu_processors: int
    cpu_threads: int


@dataclass
class PassResult:
    """Outcome of one pass over the active node set.

    A pass always completes. ``updated`` holds the records actually
    written, ``failed`` the BMC addresses that were skipped.
    """
    pass_type: PassType
    started_at: datetime
    finished_at: datetime | None = None
    updated: list[NodeInventory | NodeStatus | NodeDetailRecord] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def updated_count(self) -> int:
        return len(self.updated)
