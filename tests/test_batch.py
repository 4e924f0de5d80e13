# tests/test_batch.py

import pytest

from academics.errors import InvalidInput, NotFound
from academics.models import Grade
from academics.services.batch import alter_grades, record_grades, run_batch
from academics.services.grading import record_grade


def test_batch_isolates_duplicate_item(enrollments, teacher):
    items = [
        {"enrollment_id": enrollments[0].id, "type": "UNIT_1", "value": 8},
        {"enrollment_id": enrollments[0].id, "type": "UNIT_1", "value": 9},
        {"enrollment_id": enrollments[1].id, "type": "UNIT_1", "value": 7},
    ]

    report = record_grades(items, teacher)

    assert report.total_processed == 3
    assert report.successes == 2
    assert report.failures == 1
    first, second, third = report.results
    assert first.success and first.grade["value"] == 8.0
    assert not second.success
    assert second.code == "DUPLICATE_GRADE"
    assert "already has a UNIT_1 grade" in second.error
    assert third.success and third.grade["enrollment_id"] == enrollments[1].id
    assert Grade.query.count() == 2


def test_batch_reports_each_failure_kind(enrollments, teacher):
    en = enrollments[0]
    items = [
        {"enrollment_id": en.id, "type": "FINAL", "value": 5},
        {"enrollment_id": 999, "type": "UNIT_1", "value": 5},
        {"enrollment_id": en.id, "type": "UNIT_1", "value": 12},
        {"enrollment_id": en.id, "type": "UNIT_2"},
    ]

    report = record_grades(items, teacher)

    assert report.successes == 0
    assert [r.code for r in report.results] == [
        "INVALID_STATE",
        "NOT_FOUND",
        "INVALID_INPUT",
        "INVALID_INPUT",
    ]


def test_batch_items_see_earlier_items(enrollments, teacher):
    en = enrollments[0]
    items = [
        {"enrollment_id": en.id, "type": "UNIT_1", "value": 5},
        {"enrollment_id": en.id, "type": "UNIT_2", "value": 5},
        {"enrollment_id": en.id, "type": "UNIT_3", "value": 5},
        {"enrollment_id": en.id, "type": "FINAL", "value": 6},
    ]

    report = record_grades(items, teacher)

    assert report.successes == 4


def test_empty_batch_is_rejected(app, teacher):
    with pytest.raises(InvalidInput):
        record_grades([], teacher)
    with pytest.raises(InvalidInput):
        alter_grades(None, teacher)


def test_run_batch_captures_records_errors(app):
    def boom(item):
        raise NotFound(f"item {item} not found")

    report = run_batch([1, 2], boom, "ok")

    assert report.failures == 2
    assert report.results[1].error == "item 2 not found"


def test_alter_grades_batch(enrollments, teacher):
    g1 = record_grade(enrollments[0].id, "UNIT_1", 4, teacher)
    g2 = record_grade(enrollments[1].id, "UNIT_1", 5, teacher)

    report = alter_grades(
        [
            {"grade_id": g1.id, "value": 6},
            {"grade_id": 999, "value": 6},
            {"grade_id": g2.id, "value": 7.5},
        ],
        teacher,
    )

    assert (report.successes, report.failures) == (2, 1)
    assert report.results[1].code == "NOT_FOUND"
    assert report.results[2].grade["value"] == 7.5


def test_report_to_dict(enrollments, teacher):
    report = record_grades(
        [{"enrollment_id": enrollments[0].id, "type": "UNIT_1", "value": 8}], teacher
    )

    data = report.to_dict()

    assert data["total_processed"] == 1
    assert data["results"][0]["message"] == "Grade recorded"
    assert "error" not in data["results"][0]
