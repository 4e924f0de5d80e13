"""
Grade lifecycle and the derived academic situation.

An enrollment holds at most one grade per type. The three unit grades are
independent; FINAL is a make-up assessment accepted only once all three
units exist. The situation is never stored: ``compute_situation`` derives
it from the grade set every time it is needed.
"""

import enum
import logging
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from functools import partial

from flask import current_app

from ..extensions import db
from ..errors import NotFound, InvalidInput, InvalidState, DuplicateGrade
from ..models import Enrollment, EnrollmentStatus, Grade, GradeType, UNIT_TYPES, User
from ..models.enrollment import utcnow
from . import transaction, ensure_teacher_of, ensure_can_view
from .enrollment import get_section

logger = logging.getLogger(__name__)

MIN_GRADE = Decimal("0")
MAX_GRADE = Decimal("10")
PASSING_AVERAGE = Fraction(7)
PASSING_FINAL_SCORE = Fraction(5)


class Situation(str, enum.Enum):
    EM_ANDAMENTO = "EM_ANDAMENTO"          # in progress
    APROVADO = "APROVADO"                  # passed
    AGUARDANDO_FINAL = "AGUARDANDO_FINAL"  # awaiting make-up
    REPROVADO = "REPROVADO"                # failed


def parse_grade_type(value):
    if isinstance(value, GradeType):
        return value
    try:
        return GradeType(value)
    except ValueError:
        raise InvalidInput(
            "Grade type must be UNIT_1, UNIT_2, UNIT_3 or FINAL") from None


def parse_grade_value(value):
    """Return ``value`` as a two-place Decimal or raise ``InvalidInput``."""
    if isinstance(value, bool) or value is None:
        raise InvalidInput("Grade value must be a number")
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput("Grade value must be a number") from None
    if not d.is_finite():
        raise InvalidInput("Grade value must be a number")
    if d < MIN_GRADE or d > MAX_GRADE:
        raise InvalidInput("Grade value must be between 0 and 10")
    quantized = d.quantize(Decimal("0.01"))
    if quantized != d:
        raise InvalidInput("Grade value must have at most 2 decimal places")
    return quantized


def _scores(grades):
    return {g.type: Fraction(g.value) for g in grades}


def unit_average(grades):
    """Exact mean of the three unit grades, or None while any is missing."""
    scores = _scores(grades)
    if not all(t in scores for t in UNIT_TYPES):
        return None
    return sum(scores[t] for t in UNIT_TYPES) / 3


def compute_situation(grades):
    scores = _scores(grades)
    avg = unit_average(grades)
    if avg is None:
        return Situation.EM_ANDAMENTO
    if avg >= PASSING_AVERAGE:
        return Situation.APROVADO
    final = scores.get(GradeType.FINAL)
    if final is None:
        return Situation.AGUARDANDO_FINAL
    if (avg + final) / 2 >= PASSING_FINAL_SCORE:
        return Situation.APROVADO
    return Situation.REPROVADO


def record_grade(enrollment_id, grade_type, value, recorder,
                 final_only_below_passing=None):
    grade_type = parse_grade_type(grade_type)
    value = parse_grade_value(value)
    if final_only_below_passing is None:
        final_only_below_passing = current_app.config.get("FINAL_ONLY_BELOW_PASSING", False)

    duplicate = partial(
        DuplicateGrade, f"Enrollment {enrollment_id} already has a {grade_type.value} grade")
    with transaction(conflict=duplicate):
        en = db.session.get(Enrollment, enrollment_id)
        if en is None or en.status is not EnrollmentStatus.ACTIVE:
            raise NotFound(f"Enrollment {enrollment_id} not found")
        ensure_teacher_of(en.section, recorder, "grade")
        present = {g.type for g in en.grades}
        if grade_type in present:
            raise duplicate()
        if grade_type is GradeType.FINAL:
            if not all(t in present for t in UNIT_TYPES):
                raise InvalidState("FINAL requires all three unit grades")
            if final_only_below_passing and unit_average(en.grades) >= PASSING_AVERAGE:
                raise InvalidState(
                    "FINAL is only allowed when the unit average is below 7")
        grade = Grade(enrollment=en, type=grade_type, value=value,
                      recorded_by_id=recorder.id)
        db.session.add(grade)
    logger.info("recorded %s=%s for enrollment %s", grade_type.value, value, enrollment_id)
    return grade


def alter_grade(grade_id, value, recorder):
    value = parse_grade_value(value)
    with transaction():
        grade = db.session.get(Grade, grade_id)
        if grade is None:
            raise NotFound(f"Grade {grade_id} not found")
        ensure_teacher_of(grade.enrollment.section, recorder, "grade")
        grade.value = value
        grade.updated_at = utcnow()
    logger.info("altered grade %s to %s", grade_id, value)
    return grade


def _as_float(value):
    return None if value is None else round(float(value), 2)


def build_report_card(en):
    grades = sorted(en.grades, key=lambda g: list(GradeType).index(g.type))
    final = next((g.value for g in grades if g.type is GradeType.FINAL), None)
    sec = en.section
    return {
        "enrollment_id": en.id,
        "student": en.student.name,
        "registration_no": en.student.registration_no,
        "section": sec.code,
        "subject": sec.subject.name,
        "teacher": sec.teacher.name,
        "grades": [g.to_dict() for g in grades],
        "unit_average": _as_float(unit_average(grades)),
        "final_grade": _as_float(final),
        "situation": compute_situation(grades).value,
    }


def report_card(enrollment_id, viewer):
    en = db.session.get(Enrollment, enrollment_id)
    if en is None:
        raise NotFound(f"Enrollment {enrollment_id} not found")
    ensure_can_view(en.section, viewer, student_id=en.student_id)
    return build_report_card(en)


def section_report_cards(section_code, viewer):
    sec = get_section(section_code)
    ensure_can_view(sec, viewer)
    enrolls = (Enrollment.query.join(User, Enrollment.student_id == User.id)
               .filter(Enrollment.section_id == sec.id,
                       Enrollment.status == EnrollmentStatus.ACTIVE)
               .order_by(User.name).all())
    return {
        "section": {"code": sec.code, "subject": sec.subject.name,
                    "teacher": sec.teacher.name, "year": sec.year, "term": sec.term},
        "report_cards": [build_report_card(en) for en in enrolls],
    }
