"""
BaseService -- abstract base for kernel persistence services.

Responsibility:
    Common constructor and session-handling contract.  Concrete services
    receive a SQLAlchemy ``Session`` and use ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services.  The boundary facade (entry_services) owns commit
    and rollback so that a multi-step operation (status change + tasks +
    ledger) lands atomically.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from entry_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services that own one model.

    Guarantees:
        - The service never calls ``commit()`` or ``rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session
