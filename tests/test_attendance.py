# tests/test_attendance.py

from datetime import date, datetime

import pytest

from academics.errors import Conflict, InvalidInput, InvalidRole, NotFound
from academics.models import Attendance, Enrollment
from academics.services.attendance import (
    alter_attendance,
    attendance_history,
    parse_class_date,
    record_attendance,
)
from tests.conftest import make_user

CLASS_DAY = date(2025, 3, 10)


def stored(student):
    row = (
        Attendance.query.join(Enrollment)
        .filter(Enrollment.student_id == student.id, Attendance.class_date == CLASS_DAY)
        .one()
    )
    return row.present


@pytest.fixture
def recorded(enrollments, section, students, teacher):
    alice, _, carla = students
    return record_attendance(section.code, CLASS_DAY, [alice.id, carla.id], teacher)


def test_parse_class_date():
    assert parse_class_date("2025-03-10") == CLASS_DAY
    assert parse_class_date("2025-03-10T14:30:00") == CLASS_DAY
    assert parse_class_date(datetime(2025, 3, 10, 8, 0)) == CLASS_DAY
    with pytest.raises(InvalidInput):
        parse_class_date("10/03/2025")


def test_record_attendance_marks_every_enrolled_student(recorded, students):
    alice, bruno, carla = students

    assert recorded["total_students"] == 3
    assert recorded["present"] == 2
    assert recorded["absent"] == 1
    assert recorded["present_students"] == ["Alice Souza", "Carla Dias"]
    assert recorded["absent_students"] == ["Bruno Costa"]
    assert recorded["subject"] == "Programming I"
    assert recorded["recorded_by"] == "Maria Santos"
    assert Attendance.query.filter_by(present=True).count() == 2
    assert stored(alice) and stored(carla)
    assert not stored(bruno)


def test_record_attendance_twice_for_same_date_conflicts(recorded, section, teacher):
    with pytest.raises(Conflict):
        record_attendance(section.code, "2025-03-10T19:00:00", [], teacher)

    assert Attendance.query.count() == 3


def test_record_attendance_other_date_is_independent(recorded, section, teacher):
    report = record_attendance(section.code, date(2025, 3, 11), [], teacher)

    assert report["absent"] == 3
    assert Attendance.query.count() == 6


def test_record_attendance_unenrolled_student_aborts_everything(
    enrollments, section, students, teacher
):
    outsider = make_user("2025009", "Zeca Ramos", "student", "2025009")

    with pytest.raises(InvalidInput) as exc:
        record_attendance(section.code, CLASS_DAY, [students[0].id, outsider.id], teacher)

    assert str(outsider.id) in exc.value.message
    assert Attendance.query.count() == 0


def test_record_attendance_requires_teacher_of_record(enrollments, section, other_teacher):
    with pytest.raises(InvalidRole):
        record_attendance(section.code, CLASS_DAY, [], other_teacher)


def test_record_attendance_unknown_section(app, teacher):
    with pytest.raises(NotFound):
        record_attendance("NOPE", CLASS_DAY, [], teacher)


def test_alter_attendance_reports_only_differences(recorded, section, students, teacher):
    alice, bruno, carla = students

    report = alter_attendance(
        section.code,
        CLASS_DAY,
        [
            {"student_id": alice.id, "present": True},
            {"student_id": bruno.id, "present": True},
            {"student_id": carla.id, "present": False},
        ],
        teacher,
    )

    assert report["total_changes"] == 2
    assert [c["name"] for c in report["changes"]] == ["Bruno Costa", "Carla Dias"]
    bruno_change, carla_change = report["changes"]
    assert bruno_change["previous"] is False and bruno_change["current"] is True
    assert bruno_change["change"] == "Absent → Present"
    assert carla_change["change"] == "Present → Absent"
    assert carla_change["registration_no"] == "2025003"
    assert report["present"] == 2
    assert report["absent"] == 1
    assert report["altered_by"] == "Maria Santos"
    assert stored(alice) and stored(bruno)
    assert not stored(carla)


def test_alter_attendance_with_no_differences_is_rejected(
    recorded, section, students, teacher
):
    alice, bruno, _ = students

    with pytest.raises(InvalidInput) as exc:
        alter_attendance(
            section.code,
            CLASS_DAY,
            [
                {"student_id": alice.id, "present": True},
                {"student_id": bruno.id, "present": False},
            ],
            teacher,
        )

    assert "No changes necessary" in exc.value.message


def test_alter_attendance_without_recorded_class(enrollments, section, students, teacher):
    with pytest.raises(NotFound):
        alter_attendance(
            section.code, CLASS_DAY, [{"student_id": students[0].id, "present": False}], teacher
        )


def test_alter_attendance_unenrolled_student_writes_nothing(
    recorded, section, students, teacher
):
    outsider = make_user("2025009", "Zeca Ramos", "student", "2025009")

    with pytest.raises(InvalidInput):
        alter_attendance(
            section.code,
            CLASS_DAY,
            [
                {"student_id": students[1].id, "present": True},
                {"student_id": outsider.id, "present": True},
            ],
            teacher,
        )

    assert not stored(students[1])


def test_alter_attendance_rejects_malformed_changes(recorded, section, students, teacher):
    with pytest.raises(InvalidInput):
        alter_attendance(
            section.code, CLASS_DAY, [{"student_id": students[0].id, "present": "yes"}], teacher
        )


def test_attendance_history_groups_by_date(recorded, section, students, teacher):
    record_attendance(section.code, date(2025, 3, 12), [students[1].id], teacher)

    history = attendance_history(section.code, teacher)

    assert [d["class_date"] for d in history["days"]] == ["2025-03-12", "2025-03-10"]
    latest = history["days"][0]
    assert (latest["present"], latest["absent"]) == (1, 2)
    assert [s["name"] for s in latest["students"]] == [
        "Alice Souza",
        "Bruno Costa",
        "Carla Dias",
    ]

    only_first = attendance_history(section.code, teacher, start="2025-03-01", end="2025-03-10")
    assert [d["class_date"] for d in only_first["days"]] == ["2025-03-10"]
