"""
Database package.

- base: declarative base and model mixins
- connection: async engine construction
- models: SQLAlchemy ORM models for all entities
- store: EntityStore owning the engine and its transactions
"""

# Submodules are imported explicitly where needed to avoid circular imports

__all__ = []
