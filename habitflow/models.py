from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password = db.Column(db.String(120), nullable=False)
    name = db.Column(db.String(120))
    email = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    habits = db.relationship("Habit", backref="user", lazy=True, cascade="all, delete-orphan")
    completions = db.relationship("Completion", backref="user", lazy=True, cascade="all, delete-orphan")
    settings = db.relationship("UserSettings", backref="user", lazy=True, uselist=False, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "email": self.email,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class Habit(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    type = db.Column(db.String(10), nullable=False)  # "good" or "bad"
    frequency = db.Column(db.JSON, nullable=False)  # e.g. ["monday", "wednesday"]
    time = db.Column(db.String(5))  # "07:00"
    difficulty = db.Column(db.String(10))  # "easy", "medium", "hard"
    reminder_enabled = db.Column(db.Boolean, nullable=False, default=False)
    icon = db.Column(db.String(50))
    color = db.Column(db.String(50))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    completions = db.relationship("Completion", backref="habit", lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "frequency": list(self.frequency or []),
            "time": self.time,
            "difficulty": self.difficulty,
            "reminderEnabled": self.reminder_enabled,
            "icon": self.icon,
            "color": self.color,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class Completion(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    habit_id = db.Column(db.Integer, db.ForeignKey("habit.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    date = db.Column(db.DateTime, nullable=False, default=datetime.now)
    note = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "habitId": self.habit_id,
            "userId": self.user_id,
            "date": self.date.isoformat(),
            "note": self.note,
        }


class UserSettings(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), unique=True, nullable=False)
    theme = db.Column(db.String(10), nullable=False, default="light")
    notification_enabled = db.Column(db.Boolean, nullable=False, default=True)
    week_starts_on = db.Column(db.Integer, nullable=False, default=1)  # 0: Sunday, 1: Monday, ...

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "theme": self.theme,
            "notificationEnabled": self.notification_enabled,
            "weekStartsOn": self.week_starts_on,
        }
