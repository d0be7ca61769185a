"""Service helpers: transactions, migration version checks, health endpoints, probes and integration test utilities."""

__version__ = "0.1.0"

__all__ = ["version", "transaction", "health", "probes", "integration"]