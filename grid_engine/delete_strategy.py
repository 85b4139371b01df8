"""
Delete strategy resolver - decides how records of a table are addressed.

Records carry no synthetic identity, so updates and deletes address a row by
its primary key when the table has one, by its first unique column otherwise,
and by every column value as a last resort. Full-row matching may hit more
than one row when duplicates exist; the description says so.
"""

import enum
from dataclasses import dataclass
from typing import Sequence, Tuple

from grid_engine.errors import NoDeleteStrategyError
from grid_engine.models import ColumnMetadata, Record


class StrategyKind(enum.Enum):
    """How records are identified for update and delete."""

    PRIMARY_KEY = "primary-key"
    UNIQUE_COLUMN = "unique-column"
    FULL_ROW = "full-row"
    NONE = "none"


@dataclass(frozen=True)
class DeleteStrategy:
    """Resolved record addressing for one table."""

    kind: StrategyKind
    key_columns: Tuple[str, ...] = ()

    @property
    def can_delete(self) -> bool:
        return self.kind is not StrategyKind.NONE

    @property
    def uses_primary_key(self) -> bool:
        return self.kind is StrategyKind.PRIMARY_KEY

    def identify(self, record: Record) -> Record:
        """
        Extract the identifying values of a record.

        Raises:
            NoDeleteStrategyError: If the strategy cannot address records
            KeyError: If the record lacks one of the key columns
        """
        if not self.can_delete:
            raise NoDeleteStrategyError("Records of this table cannot be identified")
        return {name: record[name] for name in self.key_columns}

    @property
    def description(self) -> str:
        """Human-readable explanation for confirmation dialogs."""
        columns = ", ".join(self.key_columns)
        if self.kind is StrategyKind.PRIMARY_KEY:
            return f"Records are identified by primary key ({columns})."
        if self.kind is StrategyKind.UNIQUE_COLUMN:
            return f"Records are identified by the unique column {columns}."
        if self.kind is StrategyKind.FULL_ROW:
            return (
                "This table has no primary key or unique column. Records are "
                "matched on all column values; identical rows cannot be told "
                "apart and only one row is changed per request."
            )
        return "Records of this table cannot be identified for deletion."


def resolve(columns: Sequence[ColumnMetadata]) -> DeleteStrategy:
    """
    Determine the delete strategy for a table from its columns.

    Priority is primary key (all key columns, composite keys included), then
    the first unique column in ordinal order, then every column.
    """
    if not columns:
        return DeleteStrategy(kind=StrategyKind.NONE)

    ordered = sorted(
        enumerate(columns),
        key=lambda item: (
            item[1].ordinal_position if item[1].ordinal_position is not None else item[0],
            item[0],
        ),
    )
    ordered_columns = [column for _, column in ordered]

    primary_key = tuple(c.column_name for c in ordered_columns if c.is_primary_key)
    if primary_key:
        return DeleteStrategy(kind=StrategyKind.PRIMARY_KEY, key_columns=primary_key)

    for column in ordered_columns:
        if column.is_unique:
            return DeleteStrategy(
                kind=StrategyKind.UNIQUE_COLUMN, key_columns=(column.column_name,)
            )

    return DeleteStrategy(
        kind=StrategyKind.FULL_ROW,
        key_columns=tuple(c.column_name for c in ordered_columns),
    )
