"""Data models, SQLite schema and connection pooling."""
