"""
Module: entry_kernel.selectors.base
Responsibility: Base class for read-only query selectors.

Selectors accept a Session from the caller, perform read-only queries, and
return frozen DTOs -- never ORM instances.  They never add, delete, flush,
or commit.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from entry_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):

    def __init__(self, session: Session):
        self.session = session
