import enum
from datetime import datetime, timezone
from ..extensions import db

def utcnow():
    return datetime.now(timezone.utc)

class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    WITHDRAWN = "WITHDRAWN"

class GradeType(str, enum.Enum):
    UNIT_1 = "UNIT_1"
    UNIT_2 = "UNIT_2"
    UNIT_3 = "UNIT_3"
    FINAL = "FINAL"

UNIT_TYPES = (GradeType.UNIT_1, GradeType.UNIT_2, GradeType.UNIT_3)

class Enrollment(db.Model):
    __tablename__ = "enrollment"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    section_id = db.Column(db.Integer, db.ForeignKey("section.id"), nullable=False)
    status = db.Column(db.Enum(EnrollmentStatus, name="enrollment_status"),
                       nullable=False, default=EnrollmentStatus.ACTIVE)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    __table_args__ = (
        db.UniqueConstraint("student_id", "section_id", name="uq_student_section"),
    )

    student = db.relationship("User", back_populates="enrollments")
    section = db.relationship("Section", back_populates="enrollments")
    grades = db.relationship("Grade", back_populates="enrollment",
                             cascade="all, delete-orphan")
    attendance = db.relationship("Attendance", back_populates="enrollment",
                                 cascade="all, delete-orphan")

    def to_dict(self):
        return {"id": self.id, "student_id": self.student_id,
                "student": self.student.name,
                "registration_no": self.student.registration_no,
                "section": self.section.code, "status": self.status.value}

class Grade(db.Model):
    __tablename__ = "grade"
    id = db.Column(db.Integer, primary_key=True)
    enrollment_id = db.Column(db.Integer, db.ForeignKey("enrollment.id"), nullable=False)
    type = db.Column(db.Enum(GradeType, name="grade_type"), nullable=False)
    value = db.Column(db.Numeric(4, 2), nullable=False)
    recorded_by_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    __table_args__ = (
        db.UniqueConstraint("enrollment_id", "type", name="uq_enrollment_grade_type"),
        db.CheckConstraint("value >= 0 AND value <= 10", name="ck_grade_value_0_10"),
    )

    enrollment = db.relationship("Enrollment", back_populates="grades")
    recorded_by = db.relationship("User")

    def to_dict(self):
        en = self.enrollment
        return {
            "id": self.id, "enrollment_id": self.enrollment_id,
            "type": self.type.value, "value": float(self.value),
            "student": en.student.name, "subject": en.section.subject.name,
            "recorded_by": self.recorded_by.name,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

class Attendance(db.Model):
    __tablename__ = "attendance"
    id = db.Column(db.Integer, primary_key=True)
    enrollment_id = db.Column(db.Integer, db.ForeignKey("enrollment.id"), nullable=False)
    class_date = db.Column(db.Date, nullable=False)
    present = db.Column(db.Boolean, nullable=False, default=False)
    recorded_by_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    __table_args__ = (
        db.UniqueConstraint("enrollment_id", "class_date", name="uq_enrollment_class_date"),
    )

    enrollment = db.relationship("Enrollment", back_populates="attendance")
    recorded_by = db.relationship("User")
