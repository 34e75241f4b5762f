"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor and session contract.  Services persist through
    ``session.flush()`` only; the caller (``session_scope`` or the test
    harness) owns commit and rollback, so a posting and its period check
    share one transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from kazbooks_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Guarantees:
        - Never calls ``session.commit()`` or ``session.rollback()``.

    Non-goals:
        - Read-only reporting queries belong in ``kazbooks_kernel.selectors``.
    """

    def __init__(self, session: Session):
        self.session = session
