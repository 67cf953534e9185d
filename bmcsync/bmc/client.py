"""Capability interface consumed by the reconciliation passes.

Every probe is keyed by the BMC IP address. Probes after the first also
take the serial number returned by ``get_serial_no``.
"""
from abc import ABC, abstractmethod

from bmcsync.core.errors import ProbeError

__all__ = ["BMCClient", "ProbeError"]


class BMCClient(ABC):
    """Per-node probe operations against a management controller.

    Implementations raise ProbeError on any network or protocol fault.
    """

    @abstractmethod
    async def get_serial_no(self, bmc_ip: str) -> str:
        """Serial number of the system behind the BMC."""

    @abstractmethod
    async def get_uuid(self, bmc_ip: str, serial_no: str) -> str:
        """System UUID."""

    @abstractmethod
    async def get_nic_mac(self, bmc_ip: str, nic_no: int, is_bmc: bool) -> str:
        """MAC address of NIC ``nic_no`` on the BMC or on the host."""

    @abstractmethod
    async def get_processors(self, bmc_ip: str, serial_no: str) -> int:
        """Number of installed processors."""

    @abstractmethod
    async def get_processors_cores(
        self, bmc_ip: str, serial_no: str, processors: int
    ) -> int:
        """Total cores across ``processors`` processors."""

    @abstractmethod
    async def get_processors_threads(
        self, bmc_ip: str, serial_no: str, processors: int
    ) -> int:
        """Total threads across ``processors`` processors."""

    @abstractmethod
    async def get_processor_model(self, bmc_ip: str, serial_no: str) -> str:
        """Processor model string."""

    @abstractmethod
    async def get_total_system_memory(self, bmc_ip: str, serial_no: str) -> int:
        """Installed memory in bytes."""

    @abstractmethod
    async def get_power_state(self, bmc_ip: str, serial_no: str) -> str:
        """Power state as reported by the BMC, e.g. "On" or "Off"."""

    async def close(self) -> None:
        """Release transport resources."""
        return None
