"""SQL schema files and their loader."""

from .schema_manager import SCHEMA_VERSION, SchemaManager

__all__ = ["SCHEMA_VERSION", "SchemaManager"]
