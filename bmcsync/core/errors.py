"""Reconciliation error hierarchy.

Only EnumerationError aborts a pass. ProbeError and PersistenceError
cost a single node and are logged by the pass runner.
"""


class InventoryError(Exception):
    """Base exception for inventory reconciliation errors."""
    pass


class EnumerationError(InventoryError):
    """Listing the active nodes failed."""
    pass


class ProbeError(InventoryError):
    """A BMC call for one node failed (network or protocol fault)."""

    def __init__(self, bmc_ip: str, probe: str, reason: str):
        self.bmc_ip = bmc_ip
        self.probe = probe
        self.reason = reason
        super().__init__(f"{probe} failed for BMC {bmc_ip}: {reason}")


class PersistenceError(InventoryError):
    """A store write for one node failed."""
    pass
