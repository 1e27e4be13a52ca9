"""
BaseService -- abstract base for kernel services that write.

Responsibility:
    Common constructor and session-handling contract.  Services persist
    through ``session.flush()`` inside the caller's transaction and never
    commit or roll back, so several writes compose into one atomic unit.

Architecture position:
    Kernel > Services.  The transfer engine is the one exception: it owns
    its execution transactions because retrying requires rolling back.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; the caller controls transaction boundaries.
    """

    def __init__(self, session: Session):
        self.session = session
