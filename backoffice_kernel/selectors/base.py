"""
Module: backoffice_kernel.selectors.base
Responsibility: Shared plumbing for read-only selectors: hold the caller's
    session and turn ORM rows into DTOs.
Architecture position: Kernel > Selectors.  Used by the journal selector and
    by the banking module's reconciliation and candidate selectors.

Invariants enforced:
    - Selectors never add, delete, flush or commit.
    - Rows leave a selector as DTOs (``to_dto()``), not ORM instances.
"""

from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.orm import Session

from backoffice_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Read-only queries over one session owned by the caller."""

    def __init__(self, session: Session):
        self.session = session

    def _one_dto(self, stmt: Select) -> Any | None:
        """``to_dto()`` of the single row ``stmt`` selects, or None."""
        row = self.session.execute(stmt).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def _all_dtos(self, stmt: Select) -> list[Any]:
        return [row.to_dto() for row in self.session.execute(stmt).scalars()]
