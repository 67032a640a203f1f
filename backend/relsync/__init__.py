"""relsync: keeps a Qdrant index in sync with relational sources."""

__version__ = "0.1.0"
