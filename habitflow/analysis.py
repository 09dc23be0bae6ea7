import calendar
import logging
import re
from datetime import date

from flask import request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from . import app, store
from .auth import token_required
from .streak import (
    DateRange, completion_rate, current_streak, is_completed_on, is_due_on,
    iter_days, local_today, week_range,
)

logger = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
STREAK_MILESTONES = [3, 7, 14, 21, 30, 60, 90]
COMPLETION_MILESTONES = [10, 25, 50, 100, 250, 500]
MILESTONE_MIN_STREAK = 10


def _hour(habit):
    if not habit.time:
        return None
    try:
        return int(habit.time.split(":")[0])
    except ValueError:
        return None


def _habit_categories(habits):
    hours = [_hour(habit) for habit in habits]
    categories = [
        {"name": "Morning", "value": sum(1 for h in hours if h is not None and h < 12), "color": "#6366f1"},
        {"name": "Afternoon", "value": sum(1 for h in hours if h is not None and 12 <= h < 17), "color": "#10b981"},
        {"name": "Evening", "value": sum(1 for h in hours if h is not None and h >= 17), "color": "#f97316"},
    ]
    return [category for category in categories if category["value"] > 0]


def _best_streak(habits, completions, today):
    best_habit, best = None, 0
    for habit in habits:
        streak = current_streak(habit, completions, today)
        if streak > best:
            best_habit, best = habit, streak
    return best_habit, best


@app.route("/api/stats", methods=["GET"])
@token_required
def get_stats(user):
    today = local_today(app.config["TIMEZONE"])
    try:
        habits = store.get_habits_by_user_id(user.id)
        completions = store.get_completions_by_user_id(user.id)
        week = week_range(today, store.week_starts_on(user.id))
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching stats: {str(e)}")
        return jsonify({"message": "Failed to fetch stats"}), 500

    todays_habits = [habit for habit in habits if is_due_on(habit, today)]
    completed_today = [habit for habit in todays_habits if is_completed_on(habit, completions, today)]
    rate = completion_rate(habits, completions, DateRange(week.start, today))
    _, longest = _best_streak(habits, completions, today)
    logger.debug(f"Stats for user {user.username}: {len(habits)} habits, {rate}% this week")
    return jsonify({
        "activeHabits": len(habits),
        "completionRate": f"{rate}%",
        "longestStreak": f"{longest} days",
        "habitsToday": f"{len(completed_today)}/{len(todays_habits)}"
    }), 200


@app.route("/api/calendar", methods=["GET"])
@token_required
def get_calendar(user):
    today = local_today(app.config["TIMEZONE"])
    month = request.args.get("month") or today.strftime("%Y-%m")
    match = MONTH_PATTERN.match(month)
    if not match:
        return jsonify({"message": "month must be YYYY-MM"}), 400
    year, month_num = int(match.group(1)), int(match.group(2))
    if year < 1 or not 1 <= month_num <= 12:
        return jsonify({"message": "month must be YYYY-MM"}), 400
    start = date(year, month_num, 1)
    end = date(year, month_num, calendar.monthrange(year, month_num)[1])
    try:
        habits = store.get_habits_by_user_id(user.id)
        completions = store.get_completions_by_date_range(user.id, start, end)
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching calendar: {str(e)}")
        return jsonify({"message": "Failed to fetch calendar data"}), 500

    days = {}
    for day in iter_days(start, end):
        day_habits = []
        for habit in habits:
            if is_due_on(habit, day):
                data = habit.to_dict()
                data["completed"] = is_completed_on(habit, completions, day)
                day_habits.append(data)
        days[day.isoformat()] = {
            "date": day.isoformat(),
            "totalHabits": len(day_habits),
            "completedHabits": sum(1 for h in day_habits if h["completed"]),
            "habits": day_habits
        }
    return jsonify({"days": days}), 200


@app.route("/api/progress/weekly", methods=["GET"])
@token_required
def get_weekly_progress(user):
    today = local_today(app.config["TIMEZONE"])
    try:
        habits = store.get_habits_by_user_id(user.id)
        completions = store.get_completions_by_user_id(user.id)
        week = week_range(today, store.week_starts_on(user.id))
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching weekly progress: {str(e)}")
        return jsonify({"message": "Failed to fetch weekly progress"}), 500

    week_calendar = []
    for day in iter_days(week.start, week.end):
        day_habits = [habit for habit in habits if is_due_on(habit, day)]
        completed = [habit for habit in day_habits if is_completed_on(habit, completions, day)]
        week_calendar.append({
            "date": day.isoformat(),
            "completed": bool(day_habits) and len(completed) == len(day_habits)
        })

    milestone = None
    best_habit, best = _best_streak(habits, completions, today)
    if best_habit is not None and best >= MILESTONE_MIN_STREAK:
        milestone = {
            "title": f"{best}-Day {best_habit.name} Streak",
            "description": f"Achieved on {today.strftime('%b')} {today.day}. Keep it up!",
            "isNew": best % 10 == 0
        }

    return jsonify({
        "weekCompletion": completion_rate(habits, completions, DateRange(week.start, today)),
        "monthCompletion": completion_rate(habits, completions, DateRange(today.replace(day=1), today)),
        "calendar": week_calendar,
        "milestone": milestone
    }), 200


@app.route("/api/insights/data", methods=["GET"])
@token_required
def get_insights_data(user):
    today = local_today(app.config["TIMEZONE"])
    try:
        habits = store.get_habits_by_user_id(user.id)
        completions = store.get_completions_by_user_id(user.id)
        week = week_range(today, store.week_starts_on(user.id))
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching insights data: {str(e)}")
        return jsonify({"message": "Failed to fetch insights data"}), 500

    weekly = []
    for day in iter_days(week.start, today):
        day_habits = [habit for habit in habits if is_due_on(habit, day)]
        completed = sum(1 for habit in day_habits if is_completed_on(habit, completions, day))
        weekly.append({"day": day.strftime("%a"), "completed": completed, "missed": len(day_habits) - completed})

    streaks = []
    for habit in habits:
        name = habit.name if len(habit.name) <= 10 else habit.name[:10] + "..."
        streaks.append({"name": name, "streak": current_streak(habit, completions, today)})

    return jsonify({
        "weeklyCompletionRate": weekly,
        "habitCategories": _habit_categories(habits),
        "habitStreaks": streaks
    }), 200


@app.route("/api/achievements", methods=["GET"])
@token_required
def get_achievements(user):
    today = local_today(app.config["TIMEZONE"])
    try:
        habits = store.get_habits_by_user_id(user.id)
        completions = store.get_completions_by_user_id(user.id)
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching achievements: {str(e)}")
        return jsonify({"message": "Failed to fetch achievements"}), 500

    achievements = []
    for habit in habits:
        streak = current_streak(habit, completions, today)
        count = sum(1 for c in completions if c.habit_id == habit.id)
        for value in STREAK_MILESTONES:
            achieved = streak >= value
            achievements.append({
                "id": f"streak-{habit.id}-{value}",
                "type": "streak",
                "description": f"{value}-day streak for {habit.name}",
                "habitId": habit.id,
                "habitName": habit.name,
                "value": value,
                "achieved": achieved,
                "date": today.isoformat() if achieved else None
            })
        for value in COMPLETION_MILESTONES:
            achieved = count >= value
            achievements.append({
                "id": f"completion-{habit.id}-{value}",
                "type": "milestone",
                "description": f"Complete {habit.name} {value} times",
                "habitId": habit.id,
                "habitName": habit.name,
                "value": value,
                "achieved": achieved,
                "date": today.isoformat() if achieved else None
            })
    return jsonify(achievements), 200
