from flask import jsonify
from flask_login import login_required
from academics.blueprints.auth.routes import role_required, acting_user
from sqlalchemy.orm import selectinload
from ...models import Enrollment, EnrollmentStatus, Section
from ...services import grading
from . import bp

@bp.get("/enrollments")
@login_required
@role_required("student")
def my_enrollments():
    stu = acting_user()
    enrolls = Enrollment.query.options(
        selectinload(Enrollment.section).selectinload(Section.subject),
        selectinload(Enrollment.grades),
    ).filter_by(student_id=stu.id, status=EnrollmentStatus.ACTIVE).all()
    return jsonify({"enrollments": [grading.build_report_card(en) for en in enrolls]})

@bp.get("/enrollments/<int:enrollment_id>/report-card")
@login_required
@role_required("student")
def report_card(enrollment_id):
    return jsonify(grading.report_card(enrollment_id, acting_user()))
