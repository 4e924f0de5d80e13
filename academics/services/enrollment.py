import logging
from functools import partial

from flask import current_app
from sqlalchemy import func, update

from ..extensions import db
from ..errors import (NotFound, InvalidRole, CapacityExceeded,
                      DuplicateEnrollment, Conflict)
from ..models import Section, Enrollment, EnrollmentStatus, GradeType, User
from . import transaction

logger = logging.getLogger(__name__)


def active_count(section_id):
    return (db.session.query(func.count(Enrollment.id))
            .filter(Enrollment.section_id == section_id,
                    Enrollment.status == EnrollmentStatus.ACTIVE)
            .scalar())


def get_student(registration_no):
    stu = User.query.filter_by(registration_no=registration_no).one_or_none()
    if stu is None:
        raise NotFound(f"Student {registration_no} not found")
    if not stu.is_student:
        raise InvalidRole(f"User {registration_no} is not a student")
    return stu


def claim_seat(sec):
    """Take one seat in ``sec`` unless it is full.

    The compare-and-set runs in the store, so two units of work that both
    saw a free seat cannot both take it.
    """
    result = db.session.execute(
        update(Section)
        .where(Section.id == sec.id, Section.enrolled_count < Section.capacity)
        .values(enrolled_count=Section.enrolled_count + 1)
        .execution_options(synchronize_session=False))
    return result.rowcount == 1


def release_seat(sec):
    db.session.execute(
        update(Section)
        .where(Section.id == sec.id, Section.enrolled_count > 0)
        .values(enrolled_count=Section.enrolled_count - 1)
        .execution_options(synchronize_session=False))


def get_section(section_code, lock=False):
    q = Section.query.filter_by(code=section_code)
    if lock:
        q = q.with_for_update()
    sec = q.one_or_none()
    if sec is None:
        raise NotFound(f"Section {section_code} not found")
    return sec


def enroll(registration_no, section_code):
    """Enroll a student (by registration number) in a section (by code).

    The seat count is a fast path. The seat itself is taken with
    ``claim_seat`` in the same unit of work as the insert, so a section
    never holds more active enrollments than its capacity.
    """
    duplicate = partial(
        DuplicateEnrollment,
        f"Student {registration_no} is already enrolled in section {section_code}")
    with transaction(conflict=duplicate):
        stu = get_student(registration_no)
        sec = get_section(section_code, lock=True)
        taken = active_count(sec.id)
        if taken >= sec.capacity:
            logger.warning("section %s is full (%d/%d)", sec.code, taken, sec.capacity)
            raise CapacityExceeded(
                f"Section {sec.code} is full ({sec.capacity} seats)")
        existing = Enrollment.query.filter_by(
            student_id=stu.id, section_id=sec.id,
            status=EnrollmentStatus.ACTIVE).one_or_none()
        if existing is not None:
            raise duplicate()
        if not claim_seat(sec):
            logger.warning("section %s filled up concurrently", sec.code)
            raise CapacityExceeded(
                f"Section {sec.code} is full ({sec.capacity} seats)")
        en = Enrollment(student=stu, section=sec,
                        status=EnrollmentStatus.ACTIVE)
        db.session.add(en)
    logger.info("enrolled %s in %s", registration_no, section_code)
    return en


def find_enrollment(registration_no, section_code):
    stu = get_student(registration_no)
    sec = get_section(section_code)
    en = Enrollment.query.filter_by(student_id=stu.id, section_id=sec.id).one_or_none()
    if en is None:
        raise NotFound(
            f"Student {registration_no} is not enrolled in section {section_code}")
    return en


def withdraw(enrollment_id, block_after_final=None):
    """Delete an enrollment together with its grades and attendance."""
    if block_after_final is None:
        block_after_final = current_app.config.get("BLOCK_WITHDRAW_AFTER_FINAL", False)
    with transaction():
        en = db.session.get(Enrollment, enrollment_id)
        if en is None:
            raise NotFound(f"Enrollment {enrollment_id} not found")
        if block_after_final and any(g.type is GradeType.FINAL for g in en.grades):
            raise Conflict(
                f"Enrollment {enrollment_id} already has a FINAL grade and cannot be withdrawn")
        summary = {
            "student": {"name": en.student.name,
                        "registration_no": en.student.registration_no},
            "section": {"code": en.section.code,
                        "subject": en.section.subject.name},
            "removed": {"grades": len(en.grades),
                        "attendance": len(en.attendance)},
        }
        if en.status is EnrollmentStatus.ACTIVE:
            release_seat(en.section)
        db.session.delete(en)
    logger.info("withdrew enrollment %s (%s)", enrollment_id, summary["removed"])
    return summary


def section_roster(section_code):
    sec = get_section(section_code)
    enrolls = (Enrollment.query.join(User, Enrollment.student_id == User.id)
               .filter(Enrollment.section_id == sec.id,
                       Enrollment.status == EnrollmentStatus.ACTIVE)
               .order_by(User.name).all())
    data = sec.to_dict()
    data["enrolled"] = len(enrolls)
    data["free_seats"] = sec.capacity - len(enrolls)
    data["students"] = [en.to_dict() for en in enrolls]
    return data
