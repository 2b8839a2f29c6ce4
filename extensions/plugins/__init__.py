"""Database adapters: SQLite source and PostgreSQL destination."""
