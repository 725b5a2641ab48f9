"""Kernel – errors, result type, DDD building blocks and clocks."""
