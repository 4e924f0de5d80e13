from ..extensions import db
from .user import User
from .course import Subject, Section
from .enrollment import (Enrollment, EnrollmentStatus, Grade, GradeType,
                         Attendance, UNIT_TYPES)

__all__ = [
    "User", "Subject", "Section", "Enrollment", "EnrollmentStatus",
    "Grade", "GradeType", "Attendance", "UNIT_TYPES",
]
