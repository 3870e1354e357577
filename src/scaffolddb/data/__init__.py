"""Data operations for scaffolddb."""

from scaffolddb.data.crud import CrudEngine, EntityResource
from scaffolddb.data.relations import RelationLoader
from scaffolddb.data.validation import RecordValidator

__all__ = [
    "CrudEngine",
    "EntityResource",
    "RecordValidator",
    "RelationLoader",
]
