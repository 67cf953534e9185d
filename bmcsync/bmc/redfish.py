"""Redfish implementation of the BMC capability interface.

Resources used:
- /redfish/v1/Systems/<id>: serial, UUID, power state, processor and
  memory summaries
- /redfish/v1/Systems/<id>/Processors: per-socket cores and threads
- /redfish/v1/Systems/<id>/EthernetInterfaces: host (PXE) NICs
- /redfish/v1/Managers/<id>/EthernetInterfaces: BMC NICs
"""
import logging
from typing import Any

import httpx

from bmcsync.bmc.client import BMCClient, ProbeError

logger = logging.getLogger(__name__)

SYSTEMS_URI = "/redfish/v1/Systems"
MANAGERS_URI = "/redfish/v1/Managers"

GIB = 1024 ** 3


def normalize_mac(mac: str) -> str:
    """Normalize MAC address to colon-separated lowercase."""
    return mac.replace("-", ":").lower()


class RedfishClient(BMCClient):
    """Redfish REST client probing BMCs over HTTPS."""

    def __init__(
        self,
        username: str,
        password: str,
        scheme: str = "https",
        verify_ssl: bool = False,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Redfish client.

        Args:
            username: BMC account name
            password: BMC account password
            scheme: URL scheme used to reach the BMCs
            verify_ssl: Verify BMC TLS certificates
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.username = username
        self.password = password
        self.scheme = scheme
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._closed = False
        # (bmc_ip, serial_no) -> system resource URI
        self._system_uris: dict[tuple[str, str], str] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                auth=(self.username, self.password),
                verify=self.verify_ssl,
                timeout=self.timeout,
                follow_redirects=True,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client. Probes after this fail."""
        self._closed = True
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, bmc_ip: str, probe: str, uri: str) -> dict[str, Any]:
        """GET a Redfish resource and decode it."""
        if self._closed:
            raise ProbeError(bmc_ip, probe, "client closed")
        client = await self._get_client()
        url = f"{self.scheme}://{bmc_ip}{uri}"

        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise ProbeError(bmc_ip, probe, f"connection error: {e}") from e

        if response.status_code != 200:
            raise ProbeError(bmc_ip, probe, f"GET {uri} returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProbeError(bmc_ip, probe, f"invalid JSON from {uri}") from e

        if not isinstance(data, dict):
            raise ProbeError(bmc_ip, probe, f"unexpected payload from {uri}")
        return data

    @staticmethod
    def _field(data: dict[str, Any], bmc_ip: str, probe: str, *keys: str) -> Any:
        """Walk nested keys, failing the probe when one is missing."""
        value: Any = data
        for key in keys:
            if not isinstance(value, dict) or value.get(key) is None:
                raise ProbeError(bmc_ip, probe, f"missing {'.'.join(keys)}")
            value = value[key]
        return value

    def _int_field(self, data: dict[str, Any], bmc_ip: str, probe: str, *keys: str) -> int:
        value = self._field(data, bmc_ip, probe, *keys)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ProbeError(bmc_ip, probe, f"non-numeric {'.'.join(keys)}: {value!r}") from e

    async def _members(self, bmc_ip: str, probe: str, uri: str) -> list[str]:
        """Member URIs of a Redfish collection."""
        collection = await self._get(bmc_ip, probe, uri)
        members = self._field(collection, bmc_ip, probe, "Members")
        try:
            return [member["@odata.id"] for member in members]
        except (KeyError, TypeError) as e:
            raise ProbeError(bmc_ip, probe, f"malformed collection {uri}") from e

    async def _member(self, bmc_ip: str, probe: str, uri: str, index: int) -> str:
        members = await self._members(bmc_ip, probe, uri)
        if index < 0 or index >= len(members):
            raise ProbeError(
                bmc_ip, probe, f"{uri} has {len(members)} members, wanted #{index + 1}"
            )
        return members[index]

    async def _system_uri(self, bmc_ip: str, serial_no: str | None, probe: str) -> str:
        if serial_no is not None and (bmc_ip, serial_no) in self._system_uris:
            return self._system_uris[(bmc_ip, serial_no)]
        if serial_no is not None:
            return f"{SYSTEMS_URI}/{serial_no}"
        return await self._member(bmc_ip, probe, SYSTEMS_URI, 0)

    async def _system(self, bmc_ip: str, serial_no: str, probe: str) -> dict[str, Any]:
        uri = await self._system_uri(bmc_ip, serial_no, probe)
        return await self._get(bmc_ip, probe, uri)

    # ============== Probes ==============

    async def get_serial_no(self, bmc_ip: str) -> str:
        system_uri = await self._member(bmc_ip, "serial", SYSTEMS_URI, 0)
        system = await self._get(bmc_ip, "serial", system_uri)
        serial_no = str(self._field(system, bmc_ip, "serial", "SerialNumber")).strip()
        if not serial_no:
            raise ProbeError(bmc_ip, "serial", "empty SerialNumber")

        self._system_uris[(bmc_ip, serial_no)] = system_uri
        return serial_no

    async def get_uuid(self, bmc_ip: str, serial_no: str) -> str:
        system = await self._system(bmc_ip, serial_no, "uuid")
        return str(self._field(system, bmc_ip, "uuid", "UUID"))

    async def get_nic_mac(self, bmc_ip: str, nic_no: int, is_bmc: bool) -> str:
        probe = "bmc_mac" if is_bmc else "nic_mac"

        if is_bmc:
            owner_uri = await self._member(bmc_ip, probe, MANAGERS_URI, 0)
        else:
            owner_uri = await self._system_uri(bmc_ip, None, probe)
        owner = await self._get(bmc_ip, probe, owner_uri)

        nics_uri = self._field(owner, bmc_ip, probe, "EthernetInterfaces", "@odata.id")
        nic_uri = await self._member(bmc_ip, probe, nics_uri, nic_no - 1)
        nic = await self._get(bmc_ip, probe, nic_uri)

        mac = nic.get("MACAddress") or nic.get("PermanentMACAddress")
        if not mac:
            raise ProbeError(bmc_ip, probe, f"NIC {nic_no} has no MAC address")
        return normalize_mac(mac)

    async def get_processors(self, bmc_ip: str, serial_no: str) -> int:
        system = await self._system(bmc_ip, serial_no, "processors")
        return self._int_field(system, bmc_ip, "processors", "ProcessorSummary", "Count")

    async def _sum_processor_field(
        self, bmc_ip: str, serial_no: str, processors: int, probe: str, key: str
    ) -> int:
        system = await self._system(bmc_ip, serial_no, probe)
        collection_uri = self._field(system, bmc_ip, probe, "Processors", "@odata.id")
        members = await self._members(bmc_ip, probe, collection_uri)
        if len(members) < processors:
            raise ProbeError(
                bmc_ip, probe, f"expected {processors} processors, found {len(members)}"
            )

        total = 0
        for uri in members[:processors]:
            processor = await self._get(bmc_ip, probe, uri)
            total += self._int_field(processor, bmc_ip, probe, key)
        return total

    async def get_processors_cores(
        self, bmc_ip: str, serial_no: str, processors: int
    ) -> int:
        return await self._sum_processor_field(
            bmc_ip, serial_no, processors, "cores", "TotalCores"
        )

    async def get_processors_threads(
        self, bmc_ip: str, serial_no: str, processors: int
    ) -> int:
        return await self._sum_processor_field(
            bmc_ip, serial_no, processors, "threads", "TotalThreads"
        )

    async def get_processor_model(self, bmc_ip: str, serial_no: str) -> str:
        system = await self._system(bmc_ip, serial_no, "model")
        model = (system.get("ProcessorSummary") or {}).get("Model")
        if model:
            return str(model).strip()

        # Older firmware only reports the model per socket
        collection_uri = self._field(system, bmc_ip, "model", "Processors", "@odata.id")
        first = await self._member(bmc_ip, "model", collection_uri, 0)
        processor = await self._get(bmc_ip, "model", first)
        return str(self._field(processor, bmc_ip, "model", "Model")).strip()

    async def get_total_system_memory(self, bmc_ip: str, serial_no: str) -> int:
        system = await self._system(bmc_ip, serial_no, "memory")
        gib = self._field(system, bmc_ip, "memory", "MemorySummary", "TotalSystemMemoryGiB")
        try:
            return int(round(float(gib) * GIB))
        except (TypeError, ValueError) as e:
            raise ProbeError(bmc_ip, "memory", f"non-numeric memory size: {gib!r}") from e

    async def get_power_state(self, bmc_ip: str, serial_no: str) -> str:
        system = await self._system(bmc_ip, serial_no, "power")
        return str(self._field(system, bmc_ip, "power", "PowerState"))
