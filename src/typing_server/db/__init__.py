"""SQLite persistence layer: connections, schema, and repositories."""
