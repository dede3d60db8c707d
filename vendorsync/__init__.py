"""vendorsync: position-addressed file vendoring with drift management."""

__version__ = "0.1.0"
