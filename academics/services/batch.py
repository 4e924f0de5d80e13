"""
Batch grade operations with per-item failure isolation.

Each item is handed to the single-item grade operation, which runs in its
own unit of work. A failing item is captured in the report and never undoes
the items before it.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..errors import RecordsError, InvalidInput
from .grading import record_grade, alter_grade

logger = logging.getLogger(__name__)


@dataclass
class ItemResult:
    success: bool
    message: str
    grade: Optional[dict] = None
    error: Optional[str] = None
    code: Optional[str] = None

    def to_dict(self):
        data = {"success": self.success, "message": self.message}
        if self.success:
            data["grade"] = self.grade
        else:
            data["error"] = self.error
            data["code"] = self.code
        return data


@dataclass
class BatchReport:
    total_processed: int = 0
    successes: int = 0
    failures: int = 0
    results: list = field(default_factory=list)

    def add(self, result):
        self.results.append(result)
        if result.success:
            self.successes += 1
        else:
            self.failures += 1

    def to_dict(self):
        return {
            "total_processed": self.total_processed,
            "successes": self.successes,
            "failures": self.failures,
            "results": [r.to_dict() for r in self.results],
        }


def run_batch(items, operation, success_message):
    items = list(items or [])
    if not items:
        raise InvalidInput("The batch must contain at least one item")
    report = BatchReport(total_processed=len(items))
    for index, item in enumerate(items):
        try:
            grade = operation(item)
        except RecordsError as err:
            logger.warning("batch item %d failed: %s", index, err.message)
            report.add(ItemResult(False, err.message, error=err.message, code=err.code))
        else:
            report.add(ItemResult(True, success_message, grade=grade.to_dict()))
    logger.info("batch processed %d items (%d ok, %d failed)",
                report.total_processed, report.successes, report.failures)
    return report


def _field(item, name):
    if not isinstance(item, dict) or item.get(name) is None:
        raise InvalidInput(f"Missing required field: {name}")
    return item[name]


def record_grades(items, recorder):
    def op(item):
        return record_grade(_field(item, "enrollment_id"), _field(item, "type"),
                            _field(item, "value"), recorder)
    return run_batch(items, op, "Grade recorded")


def alter_grades(items, recorder):
    def op(item):
        return alter_grade(_field(item, "grade_id"), _field(item, "value"), recorder)
    return run_batch(items, op, "Grade altered")
