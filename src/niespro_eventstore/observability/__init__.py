"""Observability – correlation context and structured logging."""
