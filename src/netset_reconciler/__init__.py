"""Network-set reconciler: stage IPv6-normalized copies of the current network set."""

__version__ = "0.1.0"
