"""Database engine and session handling; tables are declared in ..models."""
