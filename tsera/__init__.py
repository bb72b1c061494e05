"""tsera - incremental artifact generator for declarative entities."""

__version__ = "0.4.0"
