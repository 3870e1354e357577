"""Storage management for scaffolddb.

- Migration: creates missing entity tables and adds missing columns
- Seeding: inserts declared rows into still-empty tables
"""

from scaffolddb.storage.migration import SchemaMigrator, migrate
from scaffolddb.storage.seeding import Seeder, seed

__all__ = ["SchemaMigrator", "Seeder", "migrate", "seed"]
