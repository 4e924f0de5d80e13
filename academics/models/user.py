from flask_login import UserMixin
from ..extensions import db

ROLES = ("admin", "teacher", "student")

class User(UserMixin, db.Model):
    __tablename__ = "user"
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(128), unique=True)
    registration_no = db.Column(db.String(32), unique=True)  # students only
    role = db.Column(db.String(16), nullable=False)
    __table_args__ = (
        db.CheckConstraint("role IN ('admin', 'teacher', 'student')", name="ck_user_role"),
    )

    sections = db.relationship("Section", back_populates="teacher")
    enrollments = db.relationship("Enrollment", back_populates="student",
                                  cascade="all, delete-orphan")

    @property
    def is_student(self):
        return self.role == "student"

    @property
    def is_teacher(self):
        return self.role == "teacher"

    @property
    def is_admin(self):
        return self.role == "admin"

    def to_dict(self):
        return {"id": self.id, "name": self.name,
                "registration_no": self.registration_no, "role": self.role}
