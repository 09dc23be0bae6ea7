import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import bcrypt
import jwt
from flask import request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from . import app, db, store, json_object

logger = logging.getLogger(__name__)


# JWT middleware
def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = request.headers.get("Authorization")
        if not token:
            logger.error("Token missing in request")
            return jsonify({"message": "Token required"}), 401
        if token.startswith("Bearer "):
            token = token[7:]
        try:
            payload = jwt.decode(token, app.config["JWT_SECRET_KEY"], algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            logger.error("Token expired")
            return jsonify({"message": "Token expired"}), 401
        except jwt.InvalidTokenError:
            logger.error("Invalid token")
            return jsonify({"message": "Invalid token"}), 401
        user_id = payload.get("user_id")
        user = store.get_user(user_id) if user_id is not None else None
        if not user:
            logger.error("User not found for token")
            return jsonify({"message": "Invalid token"}), 401
        return f(user, *args, **kwargs)
    return decorated


def generate_token(user_id, username):
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "username": username,
        "exp": now + timedelta(hours=app.config["JWT_EXPIRATION_HOURS"]),
        "iat": now
    }
    return jwt.encode(payload, app.config["JWT_SECRET_KEY"], algorithm="HS256")


@app.route("/api/register", methods=["POST"])
def register():
    data = json_object()
    if data is None:
        return jsonify({"message": "Request body must be a JSON object"}), 400
    username = data.get("username")
    password = data.get("password")
    if not isinstance(username, str) or not username.strip() or not isinstance(password, str) or not password:
        return jsonify({"message": "Username and password required"}), 400
    username = username.strip()
    for key in ("name", "email"):
        if not isinstance(data.get(key), (str, type(None))):
            return jsonify({"message": f"{key} must be a string"}), 400
    if store.get_user_by_username(username):
        return jsonify({"message": "Username already exists"}), 400
    hashed_password = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    try:
        user = store.create_user(
            username=username,
            password=hashed_password.decode("utf-8"),
            name=data.get("name"),
            email=data.get("email")
        )
    except SQLAlchemyError as e:
        logger.error(f"Database error registering user: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to register"}), 500
    logger.info(f"User registered: {username}")
    return jsonify({"message": "User registered", "token": generate_token(user.id, user.username), "user": user.to_dict()}), 201


@app.route("/api/login", methods=["POST"])
def login():
    data = json_object()
    if data is None:
        return jsonify({"message": "Request body must be a JSON object"}), 400
    username = data.get("username")
    password = data.get("password")
    if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
        return jsonify({"message": "Invalid credentials"}), 401
    user = store.get_user_by_username(username)
    if not user or not bcrypt.checkpw(password.encode("utf-8"), user.password.encode("utf-8")):
        logger.debug(f"Failed login for {username}")
        return jsonify({"message": "Invalid credentials"}), 401
    return jsonify({"token": generate_token(user.id, user.username), "user": user.to_dict()}), 200


@app.route("/api/user", methods=["GET"])
@token_required
def get_user(user):
    return jsonify(user.to_dict()), 200


@app.route("/api/user", methods=["PATCH"])
@token_required
def update_user(user):
    data = json_object()
    if data is None:
        return jsonify({"message": "Request body must be a JSON object"}), 400
    fields = {key: data[key] for key in ("name", "email") if key in data}
    if any(not isinstance(value, (str, type(None))) for value in fields.values()):
        return jsonify({"message": "name and email must be strings"}), 400
    try:
        store.update_user(user, **fields)
        logger.info(f"User {user.id} updated")
        return jsonify(user.to_dict()), 200
    except SQLAlchemyError as e:
        logger.error(f"Database error updating user: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to update user"}), 500
