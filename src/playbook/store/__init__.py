"""
Persistence adapters.

- TournamentStore: the contract the core is written against
- InMemoryStore: dict-backed, for tests and embedding
- SqlAlchemyStore: the production store on the playbook.db tables
"""

from playbook.store.base import TournamentStore
from playbook.store.memory import InMemoryStore
from playbook.store.sql import SqlAlchemyStore

__all__ = [
    "TournamentStore",
    "InMemoryStore",
    "SqlAlchemyStore",
]
