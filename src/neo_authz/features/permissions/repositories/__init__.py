"""Relation and definition stores."""

from .asyncpg_definition_store import AsyncPGDefinitionStore
from .asyncpg_relation_store import AsyncPGRelationStore
from .memory_definition_store import InMemoryDefinitionStore
from .memory_relation_store import InMemoryRelationStore

__all__ = [
    "AsyncPGDefinitionStore",
    "AsyncPGRelationStore",
    "InMemoryDefinitionStore",
    "InMemoryRelationStore",
]
