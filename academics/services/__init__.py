from contextlib import contextmanager
import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InvalidRole

logger = logging.getLogger(__name__)


@contextmanager
def transaction(conflict=None):
    """Run the block as one unit of work on ``db.session``.

    Commits when the block finishes, rolls back on any exception. An
    ``IntegrityError`` raised by the store is turned into ``conflict()``
    when a factory is given, so a constraint hit at write time reads the
    same as the pre-check that should have caught it.
    """
    try:
        yield db.session
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if conflict is None:
            raise
        err = conflict()
        logger.warning("constraint violation re-mapped to %s: %s", err.code, exc.orig)
        raise err from None
    except Exception:
        db.session.rollback()
        raise


def ensure_teacher_of(section, user, action="manage"):
    if user is None or section.teacher_id != user.id:
        raise InvalidRole(
            f"Only the teacher of section {section.code} can {action} its records")


def ensure_can_view(section, user, student_id=None):
    if user.is_admin or section.teacher_id == user.id:
        return
    if student_id is not None and user.id == student_id:
        return
    raise InvalidRole(f"Not allowed to view records of section {section.code}")
