from ..extensions import db

subject_prerequisite = db.Table(
    "subject_prerequisite",
    db.Column("subject_id", db.Integer, db.ForeignKey("subject.id"), primary_key=True),
    db.Column("prerequisite_id", db.Integer, db.ForeignKey("subject.id"), primary_key=True),
)

class Subject(db.Model):
    __tablename__ = "subject"
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, nullable=False)
    name = db.Column(db.String(128), nullable=False)
    workload = db.Column(db.Integer, nullable=False)  # hours

    prerequisites = db.relationship(
        "Subject", secondary=subject_prerequisite,
        primaryjoin=id == subject_prerequisite.c.subject_id,
        secondaryjoin=id == subject_prerequisite.c.prerequisite_id,
    )
    sections = db.relationship("Section", back_populates="subject")

    def to_dict(self):
        return {"id": self.id, "code": self.code, "name": self.name,
                "workload": self.workload,
                "prerequisites": [p.code for p in self.prerequisites]}

class Section(db.Model):
    __tablename__ = "section"
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey("subject.id"), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    term = db.Column(db.Integer, nullable=False)  # 1 or 2
    capacity = db.Column(db.Integer, nullable=False)
    enrolled_count = db.Column(db.Integer, nullable=False, default=0)  # active enrollments
    room = db.Column(db.String(64))
    __table_args__ = (
        db.CheckConstraint("term IN (1, 2)", name="ck_section_term"),
        db.CheckConstraint("capacity > 0", name="ck_section_capacity"),
        db.CheckConstraint("enrolled_count >= 0 AND enrolled_count <= capacity",
                           name="ck_section_enrolled_count"),
    )

    subject = db.relationship("Subject", back_populates="sections")
    teacher = db.relationship("User", back_populates="sections")
    enrollments = db.relationship("Enrollment", back_populates="section",
                                  cascade="all, delete-orphan")

    def to_dict(self):
        return {"id": self.id, "code": self.code, "subject": self.subject.name,
                "teacher": self.teacher.name, "year": self.year, "term": self.term,
                "capacity": self.capacity, "room": self.room}
