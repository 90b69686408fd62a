from __future__ import annotations

from typing import Any, Generic, Iterable, List, Mapping, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quote_engine.services.price_quote_errors import QuotePartialWriteError

ChildT = TypeVar("ChildT")


class ChildCollectionReplacer(Generic[ChildT]):
    """Replace every child row of a parent with a new set.

    `replace_all` deletes and inserts inside the caller's open transaction and
    flushes, so a failure surfaces here as `QuotePartialWriteError`; the caller
    owns commit/rollback and must roll back on that error. Children have no
    identity across replacements.
    """

    def __init__(self, model: Type[ChildT], *, parent_key: str, label: str) -> None:
        self.model = model
        self.parent_key = parent_key
        self.label = label

    def _delete_existing(self, db: Session, parent_id: str) -> int:
        column = getattr(self.model, self.parent_key)
        return (
            db.query(self.model)
            .filter(column == parent_id)
            .delete(synchronize_session=False)
        )

    def _insert(self, db: Session, rows: List[ChildT]) -> None:
        if rows:
            db.add_all(rows)
        db.flush()

    def replace_all(
        self,
        db: Session,
        parent_id: str,
        items: Iterable[Mapping[str, Any]],
        *,
        operation: str = "replace",
    ) -> List[ChildT]:
        rows = [
            self.model(**{self.parent_key: parent_id, "position": position, **dict(item)})
            for position, item in enumerate(items)
        ]
        try:
            self._delete_existing(db, parent_id)
            self._insert(db, rows)
        except SQLAlchemyError as e:
            raise QuotePartialWriteError(
                f"failed to replace {self.label}: {e.__class__.__name__}",
                operation=operation,
                quote_id=parent_id,
            ) from e
        return rows
