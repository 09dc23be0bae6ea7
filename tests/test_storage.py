from datetime import date, datetime

import pytest

from habitflow.storage import HabitStore


@pytest.fixture
def store(app):
    return HabitStore()


@pytest.fixture
def user(store):
    return store.create_user(username="bob", password="hash")


def make_habit(store, user, **fields):
    data = {"name": "Read", "type": "good", "frequency": ["monday"]}
    data.update(fields)
    return store.create_habit(user.id, **data)


def test_habits_are_listed_per_user(store, user):
    other = store.create_user(username="carol", password="hash")
    make_habit(store, user, name="Read")
    make_habit(store, user, name="Run")
    make_habit(store, other, name="Swim")
    assert [habit.name for habit in store.get_habits_by_user_id(user.id)] == ["Read", "Run"]


def test_update_and_delete_habit(store, user):
    habit = make_habit(store, user)
    store.update_habit(habit, name="Read more", frequency=["friday"])
    assert store.get_habit(habit.id).frequency == ["friday"]
    store.create_completion(habit.id, user.id, datetime(2024, 1, 5, 9))
    store.delete_habit(habit)
    assert store.get_habit(habit.id) is None
    assert store.get_completions_by_user_id(user.id) == []


def test_completions_in_date_range_use_whole_days(store, user):
    habit = make_habit(store, user)
    for stamp in (datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 3, 23, 59), datetime(2024, 1, 4, 0, 0)):
        store.create_completion(habit.id, user.id, stamp)
    found = store.get_completions_by_date_range(user.id, date(2024, 1, 1), date(2024, 1, 3))
    assert sorted(c.date for c in found) == [datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 3, 23, 59)]


def test_history_is_newest_first(store, user):
    habit = make_habit(store, user)
    store.create_completion(habit.id, user.id, datetime(2024, 1, 1, 9))
    store.create_completion(habit.id, user.id, datetime(2024, 1, 8, 9))
    history = store.get_completions_by_habit_id(habit.id, user.id)
    assert [c.date.day for c in history] == [8, 1]


def test_settings_upsert(store, user):
    assert store.get_user_settings(user.id) is None
    assert store.week_starts_on(user.id) == 1
    settings = store.update_user_settings(user.id, theme="dark")
    assert (settings.theme, settings.notification_enabled, settings.week_starts_on) == ("dark", True, 1)
    store.update_user_settings(user.id, week_starts_on=0)
    assert store.week_starts_on(user.id) == 0
    assert store.get_user_settings(user.id).theme == "dark"


class RecordingSession:
    """Stands in for a SQLAlchemy session and records queried models."""

    def __init__(self):
        self.models = []

    def query(self, model):
        self.models.append(model)
        return self

    def filter_by(self, **kwargs):
        return self

    def filter(self, *criteria):
        return self

    def order_by(self, *columns):
        return self

    def first(self):
        return None

    def all(self):
        return []


def test_reads_go_through_injected_session():
    session = RecordingSession()
    store = HabitStore(session=session)
    assert store.get_user_by_username("bob") is None
    assert store.get_habits_by_user_id(1) == []
    assert store.get_completions_by_habit_id(1, 1) == []
    assert store.get_completions_by_user_id(1) == []
    assert store.get_completions_by_date_range(1, date(2024, 1, 1), date(9999, 12, 31)) == []
    assert store.week_starts_on(1) == 1
    assert [model.__name__ for model in session.models] == [
        "User", "Habit", "Completion", "Completion", "Completion", "UserSettings"]
