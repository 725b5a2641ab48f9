"""Adapters – persistence backends for the event store."""
