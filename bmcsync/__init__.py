"""bmcsync: bare-metal node inventory reconciliation against BMC data."""

__version__ = "0.1.0"
