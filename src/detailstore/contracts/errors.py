# src/detailstore/contracts/errors.py
"""Error contracts for detail-column storage.

Configuration defects surface here. They are raised synchronously at the
point where the defect is observed (clause construction or pre-write
partitioning) and are never retried.
"""

from __future__ import annotations

from detailstore.contracts.resolution import DETAIL_COLUMN


class MissingDetailColumnError(RuntimeError):
    """Raised when a dynamic attribute targets a table without a detail column.

    This is a configuration-time contract violation: the entity stores
    attributes outside its declared columns but the table was never given
    the JSON column that holds them.

    Attributes:
        entity_name: Qualified name of the entity class involved
        table: Table the entity is bound to
    """

    def __init__(self, message: str, *, entity_name: str, table: str) -> None:
        super().__init__(message)
        self.entity_name = entity_name
        self.table = table

    @classmethod
    def for_entity(cls, entity_name: str, table: str) -> MissingDetailColumnError:
        """Build the error with the standard remediation hint.

        Args:
            entity_name: Qualified name of the entity class
            table: Table name the entity is bound to

        Returns:
            MissingDetailColumnError ready to raise
        """
        return cls(
            f"The entity [{entity_name}] stores dynamic attributes but the table [{table}] "
            f"does not have a '{DETAIL_COLUMN}' column. "
            f"Add a '{DETAIL_COLUMN}' JSON column to the table definition: Column('{DETAIL_COLUMN}', JSON)",
            entity_name=entity_name,
            table=table,
        )
