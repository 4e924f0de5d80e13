from flask import request, jsonify
from werkzeug.security import check_password_hash
from flask_login import login_user, logout_user, login_required, current_user
from ...models.user import User
from ...errors import InvalidInput
from . import bp
from functools import wraps
from flask import abort

def role_required(*roles):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated or current_user.role not in roles:
                abort(403)
            return f(*args, **kwargs)
        return wrapper
    return deco

def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data

def acting_user():
    return current_user._get_current_object()

@bp.post("/login")
def login():
    data = json_body()
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    u = User.query.filter_by(username=username).one_or_none()
    if u and check_password_hash(u.password_hash, password):
        login_user(u)
        return jsonify({"user": u.to_dict()})
    return jsonify({"error": "UNAUTHORIZED", "message": "Incorrect username or password"}), 401

@bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})
