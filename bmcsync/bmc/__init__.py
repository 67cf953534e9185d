"""BMC capability clients."""
from bmcsync.bmc.client import BMCClient, ProbeError
from bmcsync.bmc.redfish import RedfishClient

__all__ = ["BMCClient", "ProbeError", "RedfishClient"]
