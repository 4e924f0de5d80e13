import logging
from datetime import date, datetime
from functools import partial

from ..extensions import db
from ..errors import NotFound, InvalidInput, Conflict
from ..models import Attendance, Enrollment, EnrollmentStatus, User
from ..models.enrollment import utcnow
from . import transaction, ensure_teacher_of, ensure_can_view
from .enrollment import get_section

logger = logging.getLogger(__name__)


def parse_class_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        raise InvalidInput(f"Invalid class date: {value!r}") from None


def _student_id(value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"Invalid student id: {value!r}")
    return value


def _label(present):
    return "Present" if present else "Absent"


def _active_enrollments(sec):
    return (Enrollment.query.join(User, Enrollment.student_id == User.id)
            .filter(Enrollment.section_id == sec.id,
                    Enrollment.status == EnrollmentStatus.ACTIVE)
            .order_by(User.name).all())


def _rows_for(sec, class_date):
    return (Attendance.query.join(Enrollment)
            .filter(Enrollment.section_id == sec.id,
                    Attendance.class_date == class_date))


def record_attendance(section_code, class_date, present_student_ids, recorder):
    """Record one class: every enrolled student gets a row for ``class_date``.

    All or nothing. A listed student who is not enrolled aborts the whole
    class event.
    """
    class_date = parse_class_date(class_date)
    if not isinstance(present_student_ids, (list, tuple, set)):
        raise InvalidInput("present_student_ids must be a list")
    present_ids = {_student_id(v) for v in present_student_ids}

    already = partial(
        Conflict, f"Attendance already recorded for section {section_code} on {class_date.isoformat()}")
    with transaction(conflict=already):
        sec = get_section(section_code, lock=True)
        ensure_teacher_of(sec, recorder, "record attendance for")
        if _rows_for(sec, class_date).first() is not None:
            raise already()
        enrolls = _active_enrollments(sec)
        enrolled = {en.student_id for en in enrolls}
        invalid = sorted(present_ids - enrolled)
        if invalid:
            raise InvalidInput(
                f"Students not enrolled in section {sec.code}: {', '.join(map(str, invalid))}")

        present, absent = [], []
        for en in enrolls:
            is_present = en.student_id in present_ids
            db.session.add(Attendance(enrollment=en, class_date=class_date,
                                      present=is_present, recorded_by_id=recorder.id))
            (present if is_present else absent).append(en.student.name)
        report = {
            "section": sec.code,
            "subject": sec.subject.name,
            "class_date": class_date.isoformat(),
            "total_students": len(enrolls),
            "present": len(present),
            "absent": len(absent),
            "present_students": present,
            "absent_students": absent,
            "recorded_by": recorder.name,
        }
    logger.info("attendance for %s on %s: %d present, %d absent",
                section_code, class_date, report["present"], report["absent"])
    return report


def _parse_changes(changes):
    if not isinstance(changes, (list, tuple)):
        raise InvalidInput("changes must be a list")
    parsed = []
    for ch in changes:
        if not isinstance(ch, dict) or "student_id" not in ch or "present" not in ch:
            raise InvalidInput("Each change needs student_id and present")
        if not isinstance(ch["present"], bool):
            raise InvalidInput("present must be true or false")
        parsed.append((_student_id(ch["student_id"]), ch["present"]))
    return parsed


def alter_attendance(section_code, class_date, changes, recorder):
    """Re-state presence for some students of an already recorded class.

    Only rows whose stored value differs from the requested one are
    written; each of them yields a diff entry. Nothing to change is an
    error.
    """
    class_date = parse_class_date(class_date)
    changes = _parse_changes(changes)
    with transaction():
        sec = get_section(section_code)
        ensure_teacher_of(sec, recorder, "alter attendance for")
        rows = _rows_for(sec, class_date).all()
        if not rows:
            raise NotFound(
                f"No attendance recorded for section {sec.code} on {class_date.isoformat()}")
        enrolled = {en.student_id for en in _active_enrollments(sec)}
        invalid = sorted({sid for sid, _ in changes if sid not in enrolled})
        if invalid:
            raise InvalidInput(
                f"Students not enrolled in section {sec.code}: {', '.join(map(str, invalid))}")

        by_student = {row.enrollment.student_id: row for row in rows}
        diff = []
        for student_id, wanted in changes:
            row = by_student.get(student_id)
            if row is None:
                raise NotFound(
                    f"No attendance found for student {student_id} on {class_date.isoformat()}")
            if row.present == wanted:
                continue
            previous = row.present
            row.present = wanted
            row.recorded_by_id = recorder.id
            row.updated_at = utcnow()
            stu = row.enrollment.student
            diff.append({
                "student_id": student_id,
                "name": stu.name,
                "registration_no": stu.registration_no,
                "previous": previous,
                "current": wanted,
                "change": f"{_label(previous)} → {_label(wanted)}",
            })
        if not diff:
            raise InvalidInput(
                "No changes necessary: the submitted statuses are already the current ones")

        present = sum(1 for row in rows if row.present)
        report = {
            "section": sec.code,
            "subject": sec.subject.name,
            "class_date": class_date.isoformat(),
            "total_changes": len(diff),
            "present": present,
            "absent": len(rows) - present,
            "changes": diff,
            "altered_by": recorder.name,
            "altered_at": utcnow().isoformat(),
        }
    logger.info("altered attendance for %s on %s: %d changes",
                section_code, class_date, len(diff))
    return report


def attendance_history(section_code, viewer, start=None, end=None):
    sec = get_section(section_code)
    ensure_can_view(sec, viewer)
    q = (db.session.query(Attendance, User)
         .join(Enrollment, Attendance.enrollment_id == Enrollment.id)
         .join(User, Enrollment.student_id == User.id)
         .filter(Enrollment.section_id == sec.id))
    if start is not None:
        q = q.filter(Attendance.class_date >= parse_class_date(start))
    if end is not None:
        q = q.filter(Attendance.class_date <= parse_class_date(end))
    q = q.order_by(Attendance.class_date.desc(), User.name.asc())

    by_date = {}
    for row, stu in q.all():
        day = by_date.setdefault(row.class_date, {
            "class_date": row.class_date.isoformat(),
            "total_students": 0, "present": 0, "absent": 0, "students": [],
        })
        day["total_students"] += 1
        day["present" if row.present else "absent"] += 1
        day["students"].append({"id": stu.id, "name": stu.name,
                                "registration_no": stu.registration_no,
                                "present": row.present})
    return {
        "section": {"code": sec.code, "subject": sec.subject.name,
                    "teacher": sec.teacher.name},
        "days": list(by_date.values()),
    }
