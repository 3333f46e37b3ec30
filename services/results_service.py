import logging
import math

from errors import ConflictError, PersistenceError, ValidationError


logger = logging.getLogger(__name__)


def _js_round(value: float) -> int:
    # Half-up rounding; Python's round() is banker's rounding.
    return int(math.floor(value + 0.5))


class ResultsService:
    """Stores finished-interview summaries that feed dashboard analytics."""

    def __init__(self, store, default_total_questions: int = 6):
        self.store = store
        self.default_total_questions = default_total_questions

    def save(self, user_id, average_score, skill=None, skills_array=None,
             total_questions=None, correct_answers=None, xp_earned=None):
        if not user_id:
            raise ValidationError("User ID is required")
        try:
            average = float(average_score)
            total = int(total_questions or self.default_total_questions)
            correct = int(correct_answers) if correct_answers else _js_round(average / 10 * total)
            xp = int(xp_earned) if xp_earned else _js_round(average * 10)
            score_100 = _js_round(average * 10)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError("averageScore, totalQuestions, correctAnswers and xpEarned must be numbers")

        records = self.store.save_interview_results([
            {
                "user_id": user_id,
                "skill": skill or "General",
                "score": score_100,
                "total_questions": total,
                "correct_answers": correct,
                "xp_earned": xp,
            }
        ])

        skills = [str(name) for name in (skills_array or []) if str(name).strip()]
        if skills:
            # Per-skill rows let focus-area progress be tracked individually.
            count = len(skills)
            rows = [
                {
                    "user_id": user_id,
                    "skill": name,
                    "score": score_100,
                    "total_questions": math.ceil(total / count) or 1,
                    "correct_answers": math.ceil(correct / count) or 0,
                    "xp_earned": _js_round(xp / count),
                }
                for name in skills
            ]
            try:
                self.store.save_interview_results(rows)
            except (PersistenceError, ConflictError) as exc:
                logger.warning("Per-skill results not saved for %s: %s", user_id, exc)

        logger.info("Saved interview results for %s", user_id)
        return {
            "id": records[0].id if records else None,
            "xpEarned": xp,
        }
