"""Remote window streaming with peer-to-peer input replication."""

__version__ = "0.1.0"
