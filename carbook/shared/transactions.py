"""Transaction helpers shared by the domain services"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import StorageError

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(db: Session, action: str):
    """Roll back and re-raise database failures as StorageError"""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Storage failure while {action}: {e}")
        raise StorageError(f"Storage failure while {action}") from e
