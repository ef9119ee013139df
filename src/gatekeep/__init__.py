"""gatekeep - permission evaluation for multi-tenant workshops."""

__version__ = "0.1.0"
