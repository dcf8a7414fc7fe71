"""Domain errors raised by the item and claim workflows.

Every workflow call either returns its result or raises exactly one of
these. The HTTP layer maps them to status codes in ``app.main``.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldViolation:
    field: str
    message: str


class WorkflowError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WorkflowError):
    status_code = 400

    def __init__(self, violations: List[FieldViolation]):
        fields = ", ".join(v.field for v in violations)
        super().__init__(f"Invalid fields: {fields}")
        self.violations = violations

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([FieldViolation(field=field, message=message)])


class PermissionDenied(WorkflowError):
    status_code = 403


class NotFound(WorkflowError):
    status_code = 404


class InvalidTransition(WorkflowError):
    status_code = 409


class SelfClaimError(WorkflowError):
    status_code = 400


class ItemNotClaimableError(WorkflowError):
    status_code = 409


class PersistenceError(WorkflowError):
    status_code = 503


@contextmanager
def persistence_guard(session: Session, action: str) -> Iterator[None]:
    """Roll back and re-raise database failures as PersistenceError."""
    try:
        yield
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Persistence failure while trying to %s", action)
        raise PersistenceError(f"Could not {action}") from e
