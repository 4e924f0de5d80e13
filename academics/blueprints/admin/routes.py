from flask import jsonify
from flask_login import login_required
from werkzeug.security import generate_password_hash
from sqlalchemy.exc import IntegrityError
from academics.blueprints.auth.routes import role_required, json_body
from ...extensions import db
from ...errors import InvalidInput, NotFound, Conflict
from ...models import Subject, Section, User
from ...models.user import ROLES
from ...services import enrollment as enrollment_service
from . import bp

# ---------- Users ----------
@bp.post("/users")
@login_required
@role_required("admin")
def create_user():
    data = json_body()
    username = (data.get("username") or "").strip()
    name     = (data.get("name") or "").strip()
    password = data.get("password") or ""
    role     = data.get("role")
    if not username or not name or not password:
        raise InvalidInput("username, name and password are required")
    if role not in ROLES:
        raise InvalidInput(f"role must be one of {', '.join(ROLES)}")
    reg_no = (data.get("registration_no") or "").strip() or None
    if role == "student" and not reg_no:
        raise InvalidInput("Students need a registration_no")
    u = User(username=username, name=name, role=role,
             email=(data.get("email") or "").strip() or None,
             registration_no=reg_no,
             password_hash=generate_password_hash(password))
    db.session.add(u)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Username, e-mail or registration number already in use") from None
    return jsonify(u.to_dict()), 201

# ---------- Subjects ----------
@bp.post("/subjects")
@login_required
@role_required("admin")
def create_subject():
    data = json_body()
    code = (data.get("code") or "").strip()
    name = (data.get("name") or "").strip()
    workload = data.get("workload")
    if not code or not name:
        raise InvalidInput("Subject code and name are required")
    if not isinstance(workload, int) or isinstance(workload, bool) or workload <= 0:
        raise InvalidInput("Workload must be a positive integer")
    prereq_codes = data.get("prerequisites") or []
    prereqs = Subject.query.filter(Subject.code.in_(prereq_codes)).all() if prereq_codes else []
    missing = set(prereq_codes) - {p.code for p in prereqs}
    if missing:
        raise NotFound(f"Prerequisites not found: {', '.join(sorted(missing))}")
    s = Subject(code=code, name=name, workload=workload, prerequisites=prereqs)
    db.session.add(s)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict(f"Subject code {code} already exists") from None
    return jsonify(s.to_dict()), 201

# ---------- Sections ----------
@bp.post("/sections")
@login_required
@role_required("admin")
def create_section():
    data = json_body()
    code = (data.get("code") or "").strip()
    year = data.get("year")
    term = data.get("term")
    capacity = data.get("capacity")
    if not code or not isinstance(year, int):
        raise InvalidInput("Section code and year are required")
    if term not in (1, 2):
        raise InvalidInput("Term must be 1 or 2")
    if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
        raise InvalidInput("Capacity must be a positive integer")
    subject = Subject.query.filter_by(code=data.get("subject_code")).one_or_none()
    if subject is None:
        raise NotFound(f"Subject {data.get('subject_code')} not found")
    teacher = db.session.get(User, data.get("teacher_id")) if data.get("teacher_id") else None
    if teacher is None or not teacher.is_teacher:
        raise NotFound("Teacher not found")
    sec = Section(code=code, subject=subject, teacher=teacher, year=year, term=term,
                  capacity=capacity, room=(data.get("room") or "").strip() or None)
    db.session.add(sec)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict(f"Section code {code} already exists") from None
    return jsonify(sec.to_dict()), 201

@bp.get("/sections/<code>")
@login_required
@role_required("admin")
def section_detail(code):
    return jsonify(enrollment_service.section_roster(code))

# ---------- Enrollments ----------
@bp.post("/enrollments")
@login_required
@role_required("admin")
def enroll():
    data = json_body()
    en = enrollment_service.enroll(data.get("registration_no"), data.get("section_code"))
    return jsonify(en.to_dict()), 201

@bp.delete("/enrollments/<int:enrollment_id>")
@login_required
@role_required("admin")
def withdraw(enrollment_id):
    return jsonify(enrollment_service.withdraw(enrollment_id))

@bp.delete("/enrollments")
@login_required
@role_required("admin")
def withdraw_by_student():
    data = json_body()
    en = enrollment_service.find_enrollment(data.get("registration_no"), data.get("section_code"))
    return jsonify(enrollment_service.withdraw(en.id))
