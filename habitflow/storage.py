from datetime import datetime, time

from .models import db, User, Habit, Completion, UserSettings

DEFAULT_SETTINGS = {
    "theme": "light",
    "notification_enabled": True,
    "week_starts_on": 1,
}


class HabitStore:
    """Data access for users, habits, completions and settings.

    Writes are committed immediately; callers handle SQLAlchemyError and roll
    back the session.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    # Users
    def get_user(self, user_id):
        return self.session.get(User, user_id)

    def get_user_by_username(self, username):
        return self.session.query(User).filter_by(username=username).first()

    def create_user(self, **fields):
        user = User(**fields)
        self.session.add(user)
        self.session.commit()
        return user

    def update_user(self, user, **fields):
        for key, value in fields.items():
            setattr(user, key, value)
        self.session.commit()
        return user

    # Habits
    def get_habit(self, habit_id):
        return self.session.get(Habit, habit_id)

    def get_habits_by_user_id(self, user_id):
        return self.session.query(Habit).filter_by(user_id=user_id).order_by(Habit.id).all()

    def create_habit(self, user_id, **fields):
        habit = Habit(user_id=user_id, **fields)
        self.session.add(habit)
        self.session.commit()
        return habit

    def update_habit(self, habit, **fields):
        for key, value in fields.items():
            setattr(habit, key, value)
        self.session.commit()
        return habit

    def delete_habit(self, habit):
        self.session.delete(habit)
        self.session.commit()

    # Completions
    def get_completions_by_habit_id(self, habit_id, user_id):
        return self.session.query(Completion).filter_by(habit_id=habit_id, user_id=user_id).order_by(Completion.date.desc()).all()

    def get_completions_by_user_id(self, user_id):
        return self.session.query(Completion).filter_by(user_id=user_id).all()

    def get_completions_by_date_range(self, user_id, start_date, end_date):
        """Completions whose calendar date falls in [start_date, end_date]."""
        return self.session.query(Completion).filter(
            Completion.user_id == user_id,
            Completion.date >= datetime.combine(start_date, time.min),
            Completion.date <= datetime.combine(end_date, time.max),
        ).all()

    def create_completion(self, habit_id, user_id, date, note=""):
        completion = Completion(habit_id=habit_id, user_id=user_id, date=date, note=note)
        self.session.add(completion)
        self.session.commit()
        return completion

    # Settings
    def get_user_settings(self, user_id):
        return self.session.query(UserSettings).filter_by(user_id=user_id).first()

    def update_user_settings(self, user_id, **fields):
        settings = self.get_user_settings(user_id)
        if settings is None:
            settings = UserSettings(user_id=user_id, **{**DEFAULT_SETTINGS, **fields})
            self.session.add(settings)
        else:
            for key, value in fields.items():
                setattr(settings, key, value)
        self.session.commit()
        return settings

    def week_starts_on(self, user_id):
        settings = self.get_user_settings(user_id)
        if settings is None:
            return DEFAULT_SETTINGS["week_starts_on"]
        return settings.week_starts_on
