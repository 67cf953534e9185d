"""Integration tests for the inventory and node API endpoints."""
import httpx
import pytest

from bmcsync.api.dependencies import get_scheduler, get_store
from bmcsync.core.records import PassType
from bmcsync.core.scheduler import InventoryScheduler
from bmcsync.main import app

UUID_A = "aaaaaaaa-0000-0000-0000-00000000000a"
UUID_B = "bbbbbbbb-0000-0000-0000-00000000000b"


@pytest.fixture
def test_scheduler(service, ipmi_settings):
    """Scheduler over the test service, never started."""
    return InventoryScheduler(service=service, ipmi=ipmi_settings)


@pytest.fixture
async def client(store, test_scheduler):
    """Create test client with overridden store and scheduler."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_scheduler] = lambda: test_scheduler
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class TestHealth:
    """Test health endpoint."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/v1/health")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["scheduler_running"] is False
        assert data["next_check_all_at"] is None
        assert data["passes_running"] == {"full": False, "status": False, "detail": False}


class TestNodesApi:
    """Test node read endpoints."""

    @pytest.mark.asyncio
    async def test_list_nodes(self, client, add_node):
        """List all nodes and filter by active flag."""
        await add_node(UUID_A, "10.0.0.1")
        await add_node(UUID_B, "10.0.0.2", active=False)

        response = await client.get("/api/v1/nodes")
        assert response.status_code == 200
        assert response.json()["total"] == 2

        response = await client.get("/api/v1/nodes", params={"active": "true"})
        data = response.json()
        assert data["total"] == 1
        assert data["data"][0]["uuid"] == UUID_A

    @pytest.mark.asyncio
    async def test_get_node_not_found(self, client):
        response = await client.get(f"/api/v1/nodes/{UUID_A}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_detail_not_found(self, client, add_node):
        await add_node(UUID_A, "10.0.0.1")
        response = await client.get(f"/api/v1/nodes/{UUID_A}/detail")
        assert response.status_code == 404


class TestInventoryApi:
    """Test on-demand pass endpoints."""

    @pytest.mark.asyncio
    async def test_full_pass(self, client, fake_bmc, hw_profile, add_node):
        """Full pass updates the node and reports skipped BMCs."""
        await add_node(UUID_A, "10.0.0.1")
        await add_node(UUID_B, "10.0.0.2")
        fake_bmc.profiles["10.0.0.1"] = hw_profile(uuid=UUID_A, cores=8)
        fake_bmc.fail_on["10.0.0.2"] = "serial"

        response = await client.post("/api/v1/inventory/full")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["pass_type"] == "full"
        assert body["data"]["updated_count"] == 1
        assert body["data"]["updated"][0]["uuid"] == UUID_A
        assert body["data"]["failed"] == ["10.0.0.2"]

        node = (await client.get(f"/api/v1/nodes/{UUID_A}")).json()["data"]
        assert node["cpu_cores"] == 8

    @pytest.mark.asyncio
    async def test_status_pass(self, client, fake_bmc, hw_profile, add_node):
        """Status pass writes the power state."""
        await add_node(UUID_A, "10.0.0.1", status="Off")
        fake_bmc.profiles["10.0.0.1"] = hw_profile(power="On")

        response = await client.post("/api/v1/inventory/status")

        assert response.status_code == 200
        node = (await client.get(f"/api/v1/nodes/{UUID_A}")).json()["data"]
        assert node["status"] == "On"

    @pytest.mark.asyncio
    async def test_detail_pass(self, client, fake_bmc, hw_profile, add_node):
        """Detail pass creates the node_detail row."""
        await add_node(UUID_A, "10.0.0.1")
        fake_bmc.profiles["10.0.0.1"] = hw_profile(model="X", processors=2, threads=4)

        response = await client.post("/api/v1/inventory/detail")
        assert response.status_code == 200

        detail = (await client.get(f"/api/v1/nodes/{UUID_A}/detail")).json()["data"]
        assert detail == {
            "node_uuid": UUID_A,
            "cpu_model": "X",
            "cpu_processors": 2,
            "cpu_threads": 4,
        }

    @pytest.mark.asyncio
    async def test_pass_in_flight_conflict(self, client, test_scheduler, fake_bmc):
        """Triggering a running pass returns 409 and probes nothing."""
        guard = test_scheduler.guards[PassType.FULL]
        assert guard.try_acquire()
        try:
            response = await client.post("/api/v1/inventory/full")
        finally:
            guard.release()

        assert response.status_code == 409
        assert fake_bmc.calls == []
