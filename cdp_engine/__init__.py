"""CDP traffic-attribution and behavioral-analytics engine."""

__version__ = "0.1.0"
