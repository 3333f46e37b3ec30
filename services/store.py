"""Database access for the interview and progress services.

``Store`` is the only place that touches ``db.session``. When the app runs
without ``DATABASE_URL`` the store is built unavailable and every call returns
an empty/default result without touching the database.
"""
import logging
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from errors import ConflictError, PersistenceError
from models import (
    SESSION_COMPLETED,
    ActivityLogEntry,
    CompletedTask,
    DailyTask,
    InterviewAnswer,
    InterviewResult,
    InterviewSession,
    QuestionBankEntry,
    UserStreak,
    db,
)


logger = logging.getLogger(__name__)

GENERAL_SKILL = "General"
STALE_WRITE_ATTEMPTS = 3


class Store:
    def __init__(self, enabled: bool):
        self.enabled = enabled

    @property
    def is_available(self) -> bool:
        return self.enabled

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except StaleDataError as exc:
            db.session.rollback()
            raise ConflictError(f"Concurrent update while trying to {action}") from exc
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError(f"Duplicate record while trying to {action}") from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Database error while trying to %s: %s", action, exc)
            raise PersistenceError(f"Failed to {action}") from exc

    # Interview sessions

    def create_session(self, user_id, skills, total_questions):
        if not self.enabled:
            return None
        with self._guard("create interview session"):
            row = InterviewSession(
                user_id=user_id,
                skills=list(skills),
                total_questions=total_questions,
                completed_questions=0,
            )
            db.session.add(row)
            db.session.commit()
            return row.id

    def get_session(self, session_id):
        if not self.enabled:
            return None
        with self._guard("fetch interview session"):
            return db.session.get(InterviewSession, session_id)

    def sessions_for_user(self, user_id):
        if not self.enabled:
            return []
        with self._guard("fetch interview history"):
            return (
                InterviewSession.query.filter_by(user_id=user_id)
                .order_by(InterviewSession.created_at.desc())
                .all()
            )

    def _apply_to_session(self, session_id, action, change):
        """Apply ``change`` to the session row and commit it, re-reading after a stale write.

        Returns None when the session does not exist.
        """
        for attempt in range(1, STALE_WRITE_ATTEMPTS + 1):
            session = self.get_session(session_id)
            if session is None:
                return None
            try:
                with self._guard(action):
                    change(session)
                    db.session.commit()
                    return session
            except ConflictError as exc:
                if not isinstance(exc.__cause__, StaleDataError) or attempt == STALE_WRITE_ATTEMPTS:
                    raise
                logger.warning(
                    "Stale write on interview session %s, retrying (%d/%d)",
                    session_id, attempt, STALE_WRITE_ATTEMPTS,
                )
        return None

    def record_answer(self, session_id, question_number, question, answer, score, feedback, complete=False):
        """Store an answer and move the session forward in a single commit.

        Progress only grows and a session completes once, so after a concurrent
        update the change is reapplied to the fresh row. With ``complete`` the
        session is closed with the average of every stored score.
        """
        if not self.enabled:
            return None

        def change(session):
            db.session.add(
                InterviewAnswer(
                    session_id=session.id,
                    question_number=question_number,
                    question=question,
                    answer=answer,
                    score=score,
                    feedback=feedback,
                )
            )
            reached = min(question_number, session.total_questions)
            session.completed_questions = max(session.completed_questions or 0, reached)
            if complete and session.status != SESSION_COMPLETED:
                scores = [row.score for row in InterviewAnswer.query.filter_by(session_id=session.id)]
                session.status = SESSION_COMPLETED
                session.average_score = sum(float(value) for value in scores) / len(scores)
                session.completed_at = datetime.utcnow()

        try:
            return self._apply_to_session(session_id, "store interview answer", change)
        except ConflictError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise ConflictError(f"Question {question_number} was already answered for this session") from exc
            raise

    def answers_for_session(self, session_id):
        if not self.enabled:
            return []
        with self._guard("fetch interview answers"):
            return (
                InterviewAnswer.query.filter_by(session_id=session_id)
                .order_by(InterviewAnswer.question_number.asc())
                .all()
            )

    def save_interview_results(self, rows):
        if not self.enabled:
            return []
        with self._guard("save interview results"):
            records = [InterviewResult(**row) for row in rows]
            db.session.add_all(records)
            db.session.commit()
            return records

    # Question bank

    def question_bank(self, skills):
        if not self.enabled:
            return []
        with self._guard("fetch question bank"):
            skill_rows = []
            if skills:
                skill_rows = (
                    QuestionBankEntry.query.filter(QuestionBankEntry.skill.in_(list(skills)))
                    .order_by(QuestionBankEntry.difficulty.asc(), QuestionBankEntry.id.asc())
                    .all()
                )
            general_rows = (
                QuestionBankEntry.query.filter_by(skill=GENERAL_SKILL)
                .order_by(QuestionBankEntry.difficulty.asc(), QuestionBankEntry.id.asc())
                .all()
            )
        seen = set()
        combined = []
        for row in skill_rows + general_rows:
            if row.id not in seen:
                seen.add(row.id)
                combined.append(row)
        return combined

    # Streaks and activity

    def get_streak(self, user_id):
        if not self.enabled:
            return None
        with self._guard("fetch streak"):
            return UserStreak.query.filter_by(user_id=user_id).first()

    def save_streak(self, user_id, row, current_streak, longest_streak, activity_date):
        """Insert or update the user's streak row; the version check rejects stale writes."""
        if not self.enabled:
            return None
        with self._guard("update streak"):
            if row is None:
                row = UserStreak(user_id=user_id)
                db.session.add(row)
            row.current_streak = current_streak
            row.longest_streak = longest_streak
            row.last_activity_date = activity_date
            db.session.commit()
            return row

    def log_activity(self, user_id, activity_type, activity_date, xp_earned):
        if not self.enabled:
            return None
        with self._guard("log activity"):
            entry = ActivityLogEntry(
                user_id=user_id,
                activity_type=activity_type,
                activity_date=activity_date,
                xp_earned=xp_earned,
            )
            db.session.add(entry)
            db.session.commit()
            return entry

    def activity_between(self, user_id, start_date, end_date):
        if not self.enabled:
            return []
        with self._guard("fetch activity log"):
            return (
                ActivityLogEntry.query.filter(
                    ActivityLogEntry.user_id == user_id,
                    ActivityLogEntry.activity_date >= start_date,
                    ActivityLogEntry.activity_date <= end_date,
                )
                .order_by(ActivityLogEntry.activity_date.asc())
                .all()
            )

    # Daily tasks

    def tasks(self, technology=None, difficulty=None):
        if not self.enabled:
            return []
        with self._guard("fetch tasks"):
            query = DailyTask.query
            if technology:
                query = query.filter_by(technology=technology)
            if difficulty:
                query = query.filter_by(difficulty=difficulty)
            return query.order_by(DailyTask.created_at.asc(), DailyTask.id.asc()).all()

    def technologies(self):
        if not self.enabled:
            return []
        with self._guard("fetch technologies"):
            rows = db.session.query(DailyTask.technology).distinct().order_by(DailyTask.technology).all()
        return [row[0] for row in rows]

    def get_task(self, task_id):
        if not self.enabled:
            return None
        with self._guard("fetch task"):
            return db.session.get(DailyTask, task_id)

    def complete_task(self, user_id, task_id, xp_earned):
        """Record a completion; returns None when the user already completed the task."""
        if not self.enabled:
            return None
        row = CompletedTask(user_id=user_id, task_id=task_id, xp_earned=xp_earned)
        try:
            with self._guard("complete task"):
                db.session.add(row)
                db.session.commit()
        except ConflictError:
            return None
        return row

    def completed_tasks_between(self, user_id, start, end):
        if not self.enabled:
            return []
        with self._guard("fetch completed tasks"):
            return CompletedTask.query.filter(
                CompletedTask.user_id == user_id,
                CompletedTask.completed_at >= start,
                CompletedTask.completed_at < end,
            ).all()

