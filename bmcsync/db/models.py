"""SQLAlchemy database models."""
from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Node(Base):
    """Bare-metal node managed through its BMC.

    Rows are created by provisioning. Reconciliation only refreshes the
    MAC addresses, CPU cores, memory and power status.
    """

    __tablename__ = "node"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True)
    bmc_ip: Mapped[str] = mapped_column(
        String(45), unique=True, index=True, nullable=False
    )  # IPv6 compatible
    bmc_mac_addr: Mapped[str | None] = mapped_column(String(17))
    pxe_mac_addr: Mapped[str | None] = mapped_column(String(17))
    cpu_cores: Mapped[int | None] = mapped_column()
    memory: Mapped[int | None] = mapped_column(BigInteger)  # bytes
    status: Mapped[str | None] = mapped_column(String(20))
    active: Mapped[bool] = mapped_column(default=True, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        default=func.now(), onupdate=func.now()
    )

    # Relationships
    detail: Mapped["NodeDetail | None"] = relationship(
        back_populates="node", uselist=False
    )


class NodeDetail(Base):
    """Processor details for a node, one row per node."""

    __tablename__ = "node_detail"

    node_uuid: Mapped[str] = mapped_column(
        ForeignKey("node.uuid", ondelete="CASCADE"), primary_key=True
    )
    cpu_model: Mapped[str | None] = mapped_column(String(255))
    cpu_processors: Mapped[int | None] = mapped_column()
    cpu_threads: Mapped[int | None] = mapped_column()

    node: Mapped[Node] = relationship(back_populates="detail")
