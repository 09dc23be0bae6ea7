import logging

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError

from . import app, db, store, json_object
from .auth import token_required
from .storage import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "system")


def validate_settings(data):
    fields = {}
    errors = []
    if "theme" in data:
        if data["theme"] not in THEMES:
            errors.append(f"theme must be one of {', '.join(THEMES)}")
        else:
            fields["theme"] = data["theme"]
    if "notificationEnabled" in data:
        if not isinstance(data["notificationEnabled"], bool):
            errors.append("notificationEnabled must be a boolean")
        else:
            fields["notification_enabled"] = data["notificationEnabled"]
    if "weekStartsOn" in data:
        value = data["weekStartsOn"]
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
            errors.append("weekStartsOn must be an integer from 0 (Sunday) to 6 (Saturday)")
        else:
            fields["week_starts_on"] = value
    return fields, errors


@app.route("/api/settings", methods=["GET"])
@token_required
def get_settings(user):
    try:
        settings = store.get_user_settings(user.id)
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching settings: {str(e)}")
        return jsonify({"message": "Failed to fetch user settings"}), 500
    if settings is None:
        return jsonify({
            "userId": user.id,
            "theme": DEFAULT_SETTINGS["theme"],
            "notificationEnabled": DEFAULT_SETTINGS["notification_enabled"],
            "weekStartsOn": DEFAULT_SETTINGS["week_starts_on"]
        }), 200
    return jsonify(settings.to_dict()), 200


@app.route("/api/settings", methods=["PATCH"])
@token_required
def update_settings(user):
    data = json_object()
    if data is None:
        return jsonify({"message": "Request body must be a JSON object"}), 400
    logger.debug(f"Update settings payload: {data}")
    fields, errors = validate_settings(data)
    if errors:
        return jsonify({"message": "Invalid settings data", "errors": errors}), 400
    try:
        settings = store.update_user_settings(user.id, **fields)
        logger.info(f"Settings updated for user {user.username}")
        return jsonify(settings.to_dict()), 200
    except SQLAlchemyError as e:
        logger.error(f"Database error updating settings: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to update settings"}), 500
