"""
Additive auto-migration.

Converges the live database towards the synthesized schema on every start:

* a missing table is created with every desired column in one statement
* an existing table gets exactly the columns it lacks, compared by name

Nothing is ever dropped, renamed or retyped and no row is read or rewritten.
Type or constraint changes to existing columns are not detected.

Convergence is not guarded against concurrent runs; two processes migrating
the same empty database at once can race. Serialize first-time migration.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from enum import StrEnum

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.exc import SQLAlchemyError

from coredata_rest.core.errors import MigrationError
from coredata_rest.runtime.sa_schema import ColumnSpec, column_to_sa, index_name

logger = logging.getLogger("coredata.migrations")


# =============================================================================
# Plan types
# =============================================================================


class MigrationActionKind(StrEnum):
    CREATE_TABLE = "create_table"
    ADD_COLUMN = "add_column"


@dataclass(frozen=True)
class MigrationAction:
    """A single DDL operation."""

    kind: MigrationActionKind
    table: str
    columns: tuple[ColumnSpec, ...]

    def describe(self) -> str:
        names = ", ".join(c.name for c in self.columns)
        if self.kind == MigrationActionKind.CREATE_TABLE:
            return f"CREATE TABLE {self.table} ({names})"
        return f"ALTER TABLE {self.table} ADD COLUMN {names}"


@dataclass
class MigrationPlan:
    """Actions needed to converge one table."""

    table: str
    actions: list[MigrationAction] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.actions

    @property
    def added_columns(self) -> list[str]:
        return [
            c.name
            for a in self.actions
            if a.kind == MigrationActionKind.ADD_COLUMN
            for c in a.columns
        ]


# =============================================================================
# Planner
# =============================================================================


def plan_migration(
    table_name: str,
    desired: Iterable[ColumnSpec],
    existing_columns: Collection[str] | None,
) -> MigrationPlan:
    """
    Compute the actions that converge ``table_name``.

    Args:
        table_name: Table to converge
        desired: Synthesized column set
        existing_columns: Column names in the database, or None if the table is absent

    Returns:
        Plan with a CREATE_TABLE action, one ADD_COLUMN action per missing
        column, or no action at all when the table is converged.
    """
    desired = tuple(desired)
    plan = MigrationPlan(table=table_name)

    if existing_columns is None:
        plan.actions.append(MigrationAction(MigrationActionKind.CREATE_TABLE, table_name, desired))
        return plan

    present = set(existing_columns)
    for column in desired:
        if column.name not in present:
            plan.actions.append(
                MigrationAction(MigrationActionKind.ADD_COLUMN, table_name, (column,))
            )
    return plan


# =============================================================================
# Executor
# =============================================================================


class MigrationExecutor:
    """
    Reads the live schema and applies migration plans.

    Uses SQLAlchemy's inspector for the current state and Alembic's
    ``Operations`` for ALTER TABLE, outside Alembic's revision system.
    """

    def __init__(self, engine: sa.Engine):
        self.engine = engine

    def existing_columns(self, table_name: str) -> list[str] | None:
        """Column names of ``table_name``, or None if it does not exist."""
        inspector = sa.inspect(self.engine)
        if not inspector.has_table(table_name):
            return None
        return [c["name"] for c in inspector.get_columns(table_name)]

    def plan(self, table_name: str, desired: Iterable[ColumnSpec]) -> MigrationPlan:
        return plan_migration(table_name, desired, self.existing_columns(table_name))

    def apply(self, plan: MigrationPlan, table: sa.Table) -> None:
        """
        Apply a plan.

        Args:
            plan: Plan computed for ``table``
            table: SQLAlchemy table carrying the full desired definition

        Raises:
            MigrationError: If the database rejects a statement.
        """
        if plan.is_empty:
            logger.debug("Table %s is up to date", plan.table)
            return

        try:
            with self.engine.begin() as conn:
                for action in plan.actions:
                    if action.kind == MigrationActionKind.CREATE_TABLE:
                        table.create(conn)
                        logger.info(
                            "Created table %s with %d columns", plan.table, len(action.columns)
                        )
                    else:
                        self._add_columns(conn, action)
        except SQLAlchemyError as exc:
            raise MigrationError(
                f"Migration of table '{plan.table}' failed: {exc}", table=plan.table
            ) from exc

    def _add_columns(self, conn: sa.Connection, action: MigrationAction) -> None:
        op = Operations(MigrationContext.configure(conn))
        for column in action.columns:
            op.add_column(action.table, column_to_sa(column, with_index=False))
            if column.indexed:
                op.create_index(index_name(action.table, column.name), action.table, [column.name])
            logger.info("Added column %s.%s (%s)", action.table, column.name, column.storage_type)


# =============================================================================
# Convenience API
# =============================================================================


def converge(engine: sa.Engine, table: sa.Table, desired: Iterable[ColumnSpec]) -> MigrationPlan:
    """
    Converge one table: plan against the live schema, then apply.

    Idempotent: a converged table yields an empty plan and issues no DDL.
    """
    executor = MigrationExecutor(engine)
    plan = executor.plan(table.name, desired)
    executor.apply(plan, table)
    return plan


def plan_migrations(
    engine: sa.Engine, schemas: Iterable[tuple[str, Iterable[ColumnSpec]]]
) -> list[MigrationPlan]:
    """Dry run: compute plans for several tables without applying anything."""
    executor = MigrationExecutor(engine)
    return [executor.plan(table_name, desired) for table_name, desired in schemas]
