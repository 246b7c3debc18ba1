"""Infrastructure adapters (database engine, store implementations)."""
