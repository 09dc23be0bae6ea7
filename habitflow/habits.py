import logging
import re
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError

from . import app, db, store, json_object
from .auth import token_required
from .streak import WEEKDAYS, habit_status, is_due_on, local_today

logger = logging.getLogger(__name__)

HABIT_TYPES = ("good", "bad")
DIFFICULTIES = ("easy", "medium", "hard")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_habit(data, partial=False):
    """Check a habit payload and map it onto model fields.

    Returns ``(fields, errors)``; with ``partial`` only the keys present are
    checked.
    """
    fields = {}
    errors = []

    if not partial or "name" in data:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append("name is required")
        else:
            fields["name"] = name.strip()
    for key in ("description", "icon", "color"):
        if key not in data:
            continue
        if data[key] is not None and not isinstance(data[key], str):
            errors.append(f"{key} must be a string")
        else:
            fields[key] = data[key]
    if not partial or "type" in data:
        if data.get("type") not in HABIT_TYPES:
            errors.append("type must be 'good' or 'bad'")
        else:
            fields["type"] = data["type"]
    if not partial or "frequency" in data:
        frequency = data.get("frequency")
        if not isinstance(frequency, list) or not frequency:
            errors.append("frequency must be a non-empty list of weekdays")
        elif any(day not in WEEKDAYS for day in frequency):
            errors.append(f"frequency may only contain {', '.join(WEEKDAYS)}")
        else:
            fields["frequency"] = [day for day in WEEKDAYS if day in frequency]
    if data.get("time"):
        if not isinstance(data["time"], str) or not TIME_PATTERN.match(data["time"]):
            errors.append("time must be HH:MM")
        else:
            fields["time"] = data["time"]
    elif "time" in data:
        fields["time"] = None
    if data.get("difficulty"):
        if data["difficulty"] not in DIFFICULTIES:
            errors.append("difficulty must be 'easy', 'medium' or 'hard'")
        else:
            fields["difficulty"] = data["difficulty"]
    elif "difficulty" in data:
        fields["difficulty"] = None
    if "reminderEnabled" in data:
        if not isinstance(data["reminderEnabled"], bool):
            errors.append("reminderEnabled must be a boolean")
        else:
            fields["reminder_enabled"] = data["reminderEnabled"]
    return fields, errors


def parse_completion_date(value, tz_name=None):
    """Read a completion timestamp as a naive datetime in the local calendar.

    Returns None when ``value`` is not an ISO-8601 date or datetime.
    """
    tz = None
    if tz_name:
        try:
            tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.error(f"Unknown timezone {tz_name!r}, using host local time")
    if value is None:
        return datetime.now(tz).replace(tzinfo=None)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz).replace(tzinfo=None)
    return parsed


def _owned_habit(user, id, action):
    """Fetch habit ``id`` for ``user``; returns ``(habit, error_response)``."""
    habit = store.get_habit(id)
    if habit is None:
        return None, (jsonify({"message": "Habit not found"}), 404)
    if habit.user_id != user.id:
        logger.error(f"Unauthorized access to habit {id} by user {user.id}")
        return None, (jsonify({"message": f"Not authorized to {action} this habit"}), 403)
    return habit, None


@app.route("/api/habits", methods=["GET"])
@token_required
def get_habits(user):
    try:
        habits = store.get_habits_by_user_id(user.id)
        logger.debug(f"Fetched {len(habits)} habits for user {user.username}")
        return jsonify([habit.to_dict() for habit in habits]), 200
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching habits: {str(e)}")
        return jsonify({"message": "Failed to fetch habits"}), 500


@app.route("/api/habits/today", methods=["GET"])
@token_required
def get_todays_habits(user):
    today = local_today(app.config["TIMEZONE"])
    try:
        habits = [habit for habit in store.get_habits_by_user_id(user.id) if is_due_on(habit, today)]
        completions = store.get_completions_by_user_id(user.id)
        statuses = [habit_status(habit, completions, today) for habit in habits]
        return jsonify([status.to_dict() for status in statuses]), 200
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching today's habits: {str(e)}")
        return jsonify({"message": "Failed to fetch today's habits"}), 500


@app.route("/api/habits", methods=["POST"])
@token_required
def create_habit(user):
    data = json_object()
    if data is None:
        return jsonify({"message": "Request body must be a JSON object"}), 400
    logger.debug(f"Create habit payload: {data}")
    fields, errors = validate_habit(data)
    if errors:
        logger.error(f"Invalid habit data: {errors}")
        return jsonify({"message": "Invalid habit data", "errors": errors}), 400
    try:
        habit = store.create_habit(user.id, **fields)
        logger.info(f"Habit created: {habit.name} for user {user.username}")
        return jsonify(habit.to_dict()), 201
    except SQLAlchemyError as e:
        logger.error(f"Database error creating habit: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to create habit"}), 500


@app.route("/api/habits/<int:id>", methods=["GET"])
@token_required
def get_habit(user, id):
    habit, error = _owned_habit(user, id, "access")
    if error:
        return error
    return jsonify(habit.to_dict()), 200


@app.route("/api/habits/<int:id>", methods=["PUT"])
@token_required
def update_habit(user, id):
    habit, error = _owned_habit(user, id, "update")
    if error:
        return error
    data = json_object()
    if data is None:
        return jsonify({"message": "Request body must be a JSON object"}), 400
    logger.debug(f"Update habit {id} payload: {data}")
    fields, errors = validate_habit(data, partial=True)
    if errors:
        logger.error(f"Invalid habit data: {errors}")
        return jsonify({"message": "Invalid habit data", "errors": errors}), 400
    try:
        store.update_habit(habit, **fields)
        logger.info(f"Habit {id} updated for user {user.username}")
        return jsonify(habit.to_dict()), 200
    except SQLAlchemyError as e:
        logger.error(f"Database error updating habit: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to update habit"}), 500


@app.route("/api/habits/<int:id>", methods=["DELETE"])
@token_required
def delete_habit(user, id):
    habit, error = _owned_habit(user, id, "delete")
    if error:
        return error
    try:
        store.delete_habit(habit)
        logger.info(f"Habit {id} deleted successfully by user {user.id}")
        return jsonify({"message": "Habit deleted successfully"}), 200
    except SQLAlchemyError as e:
        logger.error(f"Error deleting habit {id}: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to delete habit"}), 500


@app.route("/api/habits/<int:id>/complete", methods=["POST"])
@token_required
def complete_habit(user, id):
    habit, error = _owned_habit(user, id, "complete")
    if error:
        return error
    data = json_object()
    if data is None:
        return jsonify({"message": "Request body must be a JSON object"}), 400
    logger.debug(f"Completion payload for habit {id}: {data}")
    completed_at = parse_completion_date(data.get("date"), app.config["TIMEZONE"])
    if completed_at is None:
        return jsonify({"message": "Invalid date format sent to server."}), 400
    note = data.get("note") or ""
    if not isinstance(note, str):
        return jsonify({"message": "Invalid completion data", "errors": ["note must be a string"]}), 400
    try:
        completion = store.create_completion(habit.id, user.id, completed_at, note)
        logger.info(f"Completion logged for habit {id} by user {user.username}")
        return jsonify(completion.to_dict()), 201
    except SQLAlchemyError as e:
        logger.error(f"Database error logging completion: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to mark habit as complete"}), 500


@app.route("/api/habits/<int:id>/history", methods=["GET"])
@token_required
def get_history(user, id):
    habit, error = _owned_habit(user, id, "access")
    if error:
        return error
    try:
        completions = store.get_completions_by_habit_id(habit.id, user.id)
        logger.debug(f"Fetched history for habit {id}: {len(completions)} completions")
        return jsonify([completion.to_dict() for completion in completions]), 200
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching history: {str(e)}")
        return jsonify({"message": "Failed to fetch history"}), 500
