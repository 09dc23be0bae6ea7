import os


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
    JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "1"))
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
    # IANA zone name; empty means the host's local calendar
    TIMEZONE = os.getenv("TIMEZONE", "")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
    PORT = int(os.getenv("PORT", "5000"))
