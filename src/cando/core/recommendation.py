"""Task recommendation scoring - pure functions, no I/O.

score = impact + urgency + due-date bonus + blocking bonus

Missing impact/urgency count as 0. The blocking bonus puts a task ahead of
the incomplete tasks waiting on it.
"""

from datetime import date

from .tasks import Task, tasks_blocked_by

HIGH = 8
MEDIUM = 5
BLOCKING_MARGIN = 5


def due_date_bonus(task: Task, as_of: date | None = None) -> int:
    """Bonus for a close (or past) due date. Never increases with distance."""
    days = task.days_until_due(as_of)
    if days is None:
        return 0
    if days < 0:
        return 15
    if days == 0:
        return 12
    if days == 1:
        return 8
    if days <= 3:
        return 5
    if days <= 7:
        return 2
    return 0


def base_score(task: Task, as_of: date | None = None) -> int:
    """Score without the blocking bonus."""
    return (task.impact or 0) + (task.urgency or 0) + due_date_bonus(task, as_of)


def blocking_bonus(task: Task, all_tasks: list[Task], as_of: date | None = None) -> int:
    blocked = tasks_blocked_by(task.id, all_tasks)
    if not blocked:
        return 0
    return max(base_score(t, as_of) for t in blocked) + BLOCKING_MARGIN


def calculate_recommendation_score(task: Task, all_tasks: list[Task], as_of: date | None = None) -> int:
    as_of = as_of or date.today()
    return base_score(task, as_of) + blocking_bonus(task, all_tasks, as_of)


def get_recommended_tasks(tasks: list[Task], limit: int = 20, as_of: date | None = None) -> list[Task]:
    """
    Incomplete tasks with at least one signal, best first.

    Ties keep their input order (sorted() is stable).
    """
    if limit <= 0:
        return []
    as_of = as_of or date.today()
    candidates = [t for t in tasks if not t.completed and t.has_signal()]
    ranked = sorted(candidates, key=lambda t: -calculate_recommendation_score(t, tasks, as_of))
    return ranked[:limit]


def _level(value: int | None) -> str | None:
    if not value or value <= 0:
        return None
    if value >= HIGH:
        return "High"
    if value >= MEDIUM:
        return "Medium"
    return "Low"


def _blocking_reason(task: Task, all_tasks: list[Task], as_of: date) -> str | None:
    blocked = tasks_blocked_by(task.id, all_tasks)
    if not blocked:
        return None
    if any((t.impact or 0) >= HIGH or (t.urgency or 0) >= HIGH for t in blocked):
        return "Blocks important tasks"
    if any(t.due_date and t.due_date < as_of for t in blocked):
        return "Blocks overdue tasks"
    return f"Blocks {len(blocked)} task{'' if len(blocked) == 1 else 's'}"


def _due_reason(task: Task, as_of: date) -> str | None:
    days = task.days_until_due(as_of)
    if days is None:
        return None
    if days < 0:
        return "Overdue"
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    if days <= 3:
        return "Due soon"
    if days <= 7:
        return "Due this week"
    return None


def get_recommendation_reason(task: Task, all_tasks: list[Task], as_of: date | None = None) -> str:
    """
    Short explanation of a task's score.

    Factors are listed by how much they add to the score, largest first.
    """
    as_of = as_of or date.today()
    factors: list[tuple[int, str]] = []

    blocking = _blocking_reason(task, all_tasks, as_of)
    if blocking:
        factors.append((blocking_bonus(task, all_tasks, as_of), blocking))

    impact, urgency = task.impact or 0, task.urgency or 0
    if impact >= HIGH and urgency >= HIGH:
        factors.append((impact + urgency, "High impact & urgency"))
    else:
        if _level(impact):
            factors.append((impact, f"{_level(impact)} impact"))
        if _level(urgency):
            factors.append((urgency, f"{_level(urgency)} urgency"))

    due = _due_reason(task, as_of)
    if due:
        factors.append((due_date_bonus(task, as_of), due))

    if not factors:
        return "No priority signals"
    factors.sort(key=lambda f: -f[0])
    return ", ".join(label for _, label in factors)
