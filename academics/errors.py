"""
Failure kinds raised by the record engines.

Every engine operation either returns its result or raises one of the
subclasses below. The HTTP layer turns them into JSON responses with the
matching status code (see ``register_error_handlers``).
"""

from flask import jsonify


class RecordsError(Exception):
    code = "RECORDS_ERROR"
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.code, "message": self.message}


class NotFound(RecordsError):
    code = "NOT_FOUND"
    status_code = 404


class InvalidRole(RecordsError):
    code = "INVALID_ROLE"
    status_code = 403


class DuplicateEnrollment(RecordsError):
    code = "DUPLICATE_ENROLLMENT"
    status_code = 409


class DuplicateGrade(RecordsError):
    code = "DUPLICATE_GRADE"
    status_code = 409


class CapacityExceeded(RecordsError):
    code = "CAPACITY_EXCEEDED"
    status_code = 409


class InvalidState(RecordsError):
    code = "INVALID_STATE"
    status_code = 422


class InvalidInput(RecordsError):
    code = "INVALID_INPUT"
    status_code = 400


class Conflict(RecordsError):
    code = "CONFLICT"
    status_code = 409


def register_error_handlers(app):
    @app.errorhandler(RecordsError)
    def handle_records_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(403)
    def forbidden(err):
        return jsonify({"error": "FORBIDDEN", "message": "Access denied"}), 403

    @app.errorhandler(404)
    def not_found(err):
        return jsonify({"error": "NOT_FOUND", "message": "Resource not found"}), 404
