"""Existence predicates against the live database schema.

Migration guards ask three questions: does this table exist, does this
column exist, does this named constraint exist.  ``SchemaIntrospector``
answers them with a fresh SQLAlchemy ``Inspector`` per call, so every
answer reflects the database at call time; nothing is cached across
calls, let alone across migrations.

The engine only depends on the ``Introspector`` protocol, which lets
tests hand in fakes that count calls.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from sqlalchemy import Table, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.engine.reflection import Inspector

# A table name, a ``Table`` or a mapped ORM class
Entity = Any


@runtime_checkable
class Introspector(Protocol):
    def table_exists(self, entity: Entity) -> bool: ...

    def column_exists(self, entity: Entity, column: str) -> bool: ...

    def constraint_exists(self, entity: Entity, constraint: str) -> bool: ...


def table_name(entity: Entity) -> str:
    """Resolve a table name from a string, a ``Table`` or a mapped class.

    >>> table_name("diagnostics")
    'diagnostics'
    """
    if isinstance(entity, str):
        return entity
    if isinstance(entity, Table):
        return entity.name
    table = getattr(entity, "__table__", None)
    if isinstance(table, Table):
        return table.name
    name = getattr(entity, "__tablename__", None)
    if isinstance(name, str):
        return name
    raise TypeError(f"Cannot resolve a table name from {entity!r}")


class SchemaIntrospector:
    """``Introspector`` backed by ``sqlalchemy.inspect``."""

    def __init__(self, engine: Engine, schema: str | None = None) -> None:
        self._engine = engine
        self._schema = schema

    def table_exists(self, entity: Entity) -> bool:
        return self._inspector().has_table(table_name(entity), schema=self._schema)

    def column_exists(self, entity: Entity, column: str) -> bool:
        inspector = self._inspector()
        name = table_name(entity)
        if not inspector.has_table(name, schema=self._schema):
            return False
        return any(col["name"] == column for col in inspector.get_columns(name, schema=self._schema))

    def constraint_exists(self, entity: Entity, constraint: str) -> bool:
        inspector = self._inspector()
        name = table_name(entity)
        if not inspector.has_table(name, schema=self._schema):
            return False
        return constraint in self._constraint_names(inspector, name)

    def constraint_names(self, entity: Entity) -> set[str]:
        """Names of all named FK, unique, check and primary key constraints."""
        inspector = self._inspector()
        name = table_name(entity)
        if not inspector.has_table(name, schema=self._schema):
            return set()
        return self._constraint_names(inspector, name)

    def _inspector(self) -> Inspector:
        return inspect(self._engine)

    def _constraint_names(self, inspector: Inspector, name: str) -> set[str]:
        names: set[str] = set()
        lookups = (
            inspector.get_foreign_keys,
            inspector.get_unique_constraints,
            inspector.get_check_constraints,
        )
        for lookup in lookups:
            try:
                entries = lookup(name, schema=self._schema)
            except NotImplementedError:
                continue
            names.update(entry["name"] for entry in entries if entry.get("name"))
        pk_name = inspector.get_pk_constraint(name, schema=self._schema).get("name")
        if pk_name:
            names.add(pk_name)
        return names


__all__ = ["Entity", "Introspector", "SchemaIntrospector", "table_name"]
