from flask import request, jsonify
from flask_login import login_required
from academics.blueprints.auth.routes import role_required, json_body, acting_user
from ...services import grading, batch, attendance
from . import bp

# ---------- Grades ----------
@bp.post("/grades")
@login_required
@role_required("teacher")
def record_grade():
    data = json_body()
    g = grading.record_grade(data.get("enrollment_id"), data.get("type"),
                             data.get("value"), acting_user())
    return jsonify(g.to_dict()), 201

@bp.put("/grades/<int:grade_id>")
@login_required
@role_required("teacher")
def alter_grade(grade_id):
    data = json_body()
    g = grading.alter_grade(grade_id, data.get("value"), acting_user())
    return jsonify(g.to_dict())

@bp.post("/grades/batch")
@login_required
@role_required("teacher")
def record_grades():
    data = json_body()
    report = batch.record_grades(data.get("grades"), acting_user())
    return jsonify(report.to_dict()), 201

@bp.put("/grades/batch")
@login_required
@role_required("teacher")
def alter_grades():
    data = json_body()
    report = batch.alter_grades(data.get("grades"), acting_user())
    return jsonify(report.to_dict())

@bp.get("/enrollments/<int:enrollment_id>/report-card")
@login_required
@role_required("teacher")
def report_card(enrollment_id):
    return jsonify(grading.report_card(enrollment_id, acting_user()))

@bp.get("/sections/<code>/report-cards")
@login_required
@role_required("teacher")
def section_report_cards(code):
    return jsonify(grading.section_report_cards(code, acting_user()))

# ---------- Attendance ----------
@bp.post("/sections/<code>/attendance")
@login_required
@role_required("teacher")
def record_attendance(code):
    data = json_body()
    report = attendance.record_attendance(code, data.get("class_date"),
                                          data.get("present_student_ids", []),
                                          acting_user())
    return jsonify(report), 201

@bp.put("/sections/<code>/attendance")
@login_required
@role_required("teacher")
def alter_attendance(code):
    data = json_body()
    report = attendance.alter_attendance(code, data.get("class_date"),
                                         data.get("changes"), acting_user())
    return jsonify(report)

@bp.get("/sections/<code>/attendance")
@login_required
@role_required("teacher")
def attendance_history(code):
    start = request.args.get("start") or None
    end   = request.args.get("end") or None
    return jsonify(attendance.attendance_history(code, acting_user(), start, end))
