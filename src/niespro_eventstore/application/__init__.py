"""Application layer – event sourcing and dispatch."""
