from types import SimpleNamespace

WEEKDAYS_ONLY = ("monday", "tuesday", "wednesday", "thursday", "friday")


def make_habit(id=1, frequency=WEEKDAYS_ONLY):
    return SimpleNamespace(id=id, frequency=list(frequency) if frequency is not None else None)


def make_completion(habit_id, date):
    return SimpleNamespace(habit_id=habit_id, date=date)


def register(client, username="alice", password="secret"):
    response = client.post("/api/register", json={"username": username, "password": password})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.get_json()['token']}"}
