"""Compare-and-set writes: the engine's only concurrency control."""
import enum
import uuid
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from quoteflow.core.exceptions import ConcurrentModificationError


def compare_and_set(
    db: Session,
    model: type,
    row_id: uuid.UUID,
    expected: enum.Enum,
    *criteria: Any,
    entity_type: str,
    status_column: str = "status",
    **values: Any,
) -> None:
    """UPDATE model SET **values WHERE id = row_id AND status_column = expected [AND criteria].

    Raises ConcurrentModificationError when no row matched, i.e. another
    writer moved the row away from ``expected`` since it was read.
    """
    column = getattr(model, status_column)
    result = db.execute(
        update(model)
        .where(model.id == row_id, column == expected, *criteria)
        .values(**values)
    )
    if result.rowcount != 1:
        raise ConcurrentModificationError(entity_type, row_id, expected.value)
