"""bmcsync main application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bmcsync import __version__
from bmcsync.api.routes import health, inventory, nodes
from bmcsync.bmc.redfish import RedfishClient
from bmcsync.config import settings
from bmcsync.core.inventory import InventoryService
from bmcsync.core.scheduler import inventory_scheduler
from bmcsync.db.database import async_session_factory, close_db, init_db
from bmcsync.db.store import NodeStore

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting bmcsync...")

    await init_db()
    logger.info("Database initialized")

    client = RedfishClient(
        username=settings.ipmi.username,
        password=settings.ipmi.password,
        scheme=settings.ipmi.scheme,
        verify_ssl=settings.ipmi.verify_ssl,
        timeout=settings.ipmi.request_timeout,
    )
    inventory_scheduler.set_service(
        InventoryService(NodeStore(async_session_factory), client, settings.ipmi)
    )
    inventory_scheduler.start()

    logger.info(f"bmcsync ready on http://{settings.host}:{settings.port}")

    yield

    logger.info("Shutting down bmcsync...")

    await inventory_scheduler.shutdown(wait=True)
    await client.close()

    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title="bmcsync",
    description="Bare-metal node inventory reconciliation against BMC data",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(nodes.router, prefix="/api/v1", tags=["nodes"])
app.include_router(inventory.router, prefix="/api/v1", tags=["inventory"])


def main():
    """Run the application."""
    import uvicorn
    uvicorn.run(
        "bmcsync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )


if __name__ == "__main__":
    main()
