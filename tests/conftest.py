"""Shared test fixtures."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bmcsync.bmc.client import BMCClient, ProbeError
from bmcsync.config.settings import IpmiSettings
from bmcsync.core.inventory import InventoryService
from bmcsync.db.models import Base, Node, NodeDetail
from bmcsync.db.store import NodeStore

GIB = 1024 ** 3


def make_profile(**overrides) -> dict:
    """Hardware as a fake BMC reports it."""
    profile = {
        "serial": "SN-0001",
        "uuid": "11111111-1111-1111-1111-111111111111",
        "bmc_mac": "aa:bb:cc:00:00:01",
        "pxe_mac": "aa:bb:cc:00:01:01",
        "processors": 2,
        "cores": 8,
        "threads": 16,
        "model": "Intel(R) Xeon(R) Gold 6230",
        "memory": 16 * GIB,
        "power": "On",
    }
    profile.update(overrides)
    return profile


class FakeBMCClient(BMCClient):
    """In-memory BMC fleet keyed by BMC IP.

    ``fail_on`` maps a BMC IP to the probe name that raises ProbeError.
    Every call is recorded in ``calls`` as (probe, bmc_ip).
    """

    def __init__(self, profiles: dict[str, dict] | None = None):
        self.profiles = profiles or {}
        self.fail_on: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []

    def _probe(self, probe: str, bmc_ip: str) -> dict:
        self.calls.append((probe, bmc_ip))
        if self.fail_on.get(bmc_ip) == probe:
            raise ProbeError(bmc_ip, probe, "simulated failure")
        if bmc_ip not in self.profiles:
            raise ProbeError(bmc_ip, probe, "no route to host")
        return self.profiles[bmc_ip]

    def probed_ips(self) -> set[str]:
        return {ip for _, ip in self.calls}

    async def get_serial_no(self, bmc_ip):
        return self._probe("serial", bmc_ip)["serial"]

    async def get_uuid(self, bmc_ip, serial_no):
        return self._probe("uuid", bmc_ip)["uuid"]

    async def get_nic_mac(self, bmc_ip, nic_no, is_bmc):
        profile = self._probe("bmc_mac" if is_bmc else "pxe_mac", bmc_ip)
        return profile["bmc_mac"] if is_bmc else profile["pxe_mac"]

    async def get_processors(self, bmc_ip, serial_no):
        return self._probe("processors", bmc_ip)["processors"]

    async def get_processors_cores(self, bmc_ip, serial_no, processors):
        return self._probe("cores", bmc_ip)["cores"]

    async def get_processors_threads(self, bmc_ip, serial_no, processors):
        return self._probe("threads", bmc_ip)["threads"]

    async def get_processor_model(self, bmc_ip, serial_no):
        return self._probe("model", bmc_ip)["model"]

    async def get_total_system_memory(self, bmc_ip, serial_no):
        return self._probe("memory", bmc_ip)["memory"]

    async def get_power_state(self, bmc_ip, serial_no):
        return self._probe("power", bmc_ip)["power"]


@pytest.fixture
async def async_engine():
    """Create async in-memory SQLite engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def store(session_factory):
    """Node store over the test database."""
    return NodeStore(session_factory)


@pytest.fixture
def fake_bmc():
    """Empty fake BMC fleet."""
    return FakeBMCClient()


@pytest.fixture
def ipmi_settings():
    """IPMI settings with debug write logging on."""
    return IpmiSettings(debug=True, check_all_interval_ms=60000)


@pytest.fixture
def service(store, fake_bmc, ipmi_settings):
    """Inventory service over the test store and fake fleet."""
    return InventoryService(store, fake_bmc, ipmi_settings)


@pytest.fixture
def add_node(session_factory):
    """Insert a provisioned node row."""
    async def _add_node(uuid: str, bmc_ip: str, active: bool = True, **fields) -> None:
        async with session_factory() as db:
            db.add(Node(uuid=uuid, bmc_ip=bmc_ip, active=active, **fields))
            await db.commit()
    return _add_node


@pytest.fixture
def fetch_node(session_factory):
    """Read a node row back."""
    async def _fetch_node(uuid: str) -> Node | None:
        async with session_factory() as db:
            return await db.get(Node, uuid)
    return _fetch_node


@pytest.fixture
def fetch_details(session_factory):
    """Read all node_detail rows of a node."""
    async def _fetch_details(node_uuid: str) -> list[NodeDetail]:
        async with session_factory() as db:
            result = await db.execute(
                select(NodeDetail).where(NodeDetail.node_uuid == node_uuid)
            )
            return list(result.scalars().all())
    return _fetch_details


@pytest.fixture
def count_details(session_factory):
    """Count node_detail rows."""
    async def _count_details() -> int:
        async with session_factory() as db:
            return (await db.execute(select(func.count(NodeDetail.node_uuid)))).scalar()
    return _count_details


@pytest.fixture
def hw_profile():
    """Factory for fake BMC hardware profiles."""
    return make_profile
