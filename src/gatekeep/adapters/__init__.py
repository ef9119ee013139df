"""Adapters - concrete stores behind the core protocols."""
