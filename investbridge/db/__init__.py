"""Store persistence: engine, session factory, row models."""
