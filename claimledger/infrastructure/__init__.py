"""Storage and external service adapters."""
