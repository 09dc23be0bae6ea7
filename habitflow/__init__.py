import logging
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_migrate import Migrate
from dotenv import load_dotenv

# Load environment variables before Config reads them
load_dotenv()

from .config import Config  # noqa: E402
from .models import db  # noqa: E402
from .storage import HabitStore  # noqa: E402

# Configure logging
logging.basicConfig(level=Config.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)
app.config.from_object(Config)
CORS(app, resources={r"/api/*": {
    "origins": app.config["FRONTEND_URL"],
    "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    "allow_headers": ["Content-Type", "Authorization"],
    "supports_credentials": True,
    "expose_headers": ["Authorization"]
}})
db.init_app(app)
migrate = Migrate(app, db)
store = HabitStore()

# Create database tables
with app.app_context():
    db.create_all()
    logger.debug("Database tables created")


def json_object():
    """The request body if it is a JSON object, ``{}`` when empty, else None."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error(f"Request body is not a JSON object: {type(data).__name__}")
        return None
    return data


@app.errorhandler(404)
def not_found(error):
    return jsonify({"message": "Not found"}), 404


@app.errorhandler(405)
def method_not_allowed(error):
    return jsonify({"message": "Method not allowed"}), 405


from . import auth, habits, analysis, user_settings  # noqa: E402,F401
