import logging
from datetime import datetime, time, timedelta, timezone

from errors import NotFoundError, ValidationError
from services.evaluation_service import is_passing
from services.streak_service import resolve_zone, today_in


logger = logging.getLogger(__name__)

MIN_ANSWER_LENGTH = 10


class TaskService:
    """Daily practice tasks: listing, answer validation and completion."""

    def __init__(self, store, evaluator, passing_score: float = 6.0, default_xp: int = 10,
                 timezone_name: str = "UTC", today=None):
        self.store = store
        self.evaluator = evaluator
        self.passing_score = passing_score
        self.default_xp = default_xp
        self.timezone_name = timezone_name
        self.today = today or today_in(timezone_name)

    def list_tasks(self, technology=None, difficulty=None):
        technology = None if technology in (None, "", "all") else technology
        difficulty = None if difficulty in (None, "", "all") else difficulty
        return [task.to_dict() for task in self.store.tasks(technology, difficulty)]

    def technologies(self):
        return self.store.technologies()

    def validate_answer(self, question, answer, technology=None):
        question = (question or "").strip()
        answer = (answer or "").strip()
        if not question:
            raise ValidationError("Question is required")
        if len(answer) < MIN_ANSWER_LENGTH:
            raise ValidationError(f"Answer must be at least {MIN_ANSWER_LENGTH} characters long")

        skills = [technology] if technology else []
        outcome = self.evaluator.evaluate(question, answer, skills)
        evaluation = outcome.value
        return {
            "isCorrect": is_passing(evaluation.score, self.passing_score),
            "score": evaluation.score,
            "feedback": evaluation.feedback,
            "strengths": evaluation.strengths,
            "improvements": evaluation.improvements,
        }

    def complete(self, user_id, task_id, xp_earned=None):
        """Returns ``(row, already_completed)``."""
        xp = int(xp_earned) if xp_earned else self.default_xp
        if self.store.is_available and self.store.get_task(task_id) is None:
            raise NotFoundError("Task not found")
        row = self.store.complete_task(user_id, task_id, xp)
        if row is None and self.store.is_available:
            logger.info("Task %s already completed by %s", task_id, user_id)
            return None, True
        return row, False

    def _day_bounds_utc(self):
        # Stored timestamps are naive UTC; convert the local day to that frame.
        start_local = datetime.combine(self.today(), time.min, tzinfo=resolve_zone(self.timezone_name))
        end_local = start_local + timedelta(days=1)
        return (
            start_local.astimezone(timezone.utc).replace(tzinfo=None),
            end_local.astimezone(timezone.utc).replace(tzinfo=None),
        )

    def completed_today(self, user_id):
        start, end = self._day_bounds_utc()
        rows = self.store.completed_tasks_between(user_id, start, end)
        return {
            "completedTaskIds": [row.task_id for row in rows],
            "totalXpToday": sum(row.xp_earned or 0 for row in rows),
            "tasksCompletedToday": len(rows),
        }

