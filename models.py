from datetime import datetime
from uuid import uuid4

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()


SESSION_IN_PROGRESS = "in_progress"
SESSION_COMPLETED = "completed"


def _new_session_id() -> str:
    return uuid4().hex


class InterviewSession(db.Model):
    __tablename__ = "interview_sessions"

    id = db.Column(db.String(64), primary_key=True, default=_new_session_id)
    user_id = db.Column(db.String(64), nullable=True, index=True)
    skills = db.Column(db.JSON, nullable=False, default=list)
    total_questions = db.Column(db.Integer, nullable=False, default=6)
    completed_questions = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default=SESSION_IN_PROGRESS)
    average_score = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "skills": list(self.skills or []),
            "total_questions": self.total_questions,
            "completed_questions": self.completed_questions,
            "status": self.status,
            "average_score": self.average_score,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class InterviewAnswer(db.Model):
    __tablename__ = "interview_answers"
    __table_args__ = (
        db.UniqueConstraint("session_id", "question_number", name="uq_answer_session_ordinal"),
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), db.ForeignKey("interview_sessions.id"), nullable=False, index=True)
    question_number = db.Column(db.Integer, nullable=False)
    question = db.Column(db.Text, nullable=False)
    answer = db.Column(db.Text, nullable=False)
    score = db.Column(db.Float, nullable=False)
    feedback = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "session_id": self.session_id,
            "question_number": self.question_number,
            "question": self.question,
            "answer": self.answer,
            "score": self.score,
            "feedback": self.feedback,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class UserStreak(db.Model):
    __tablename__ = "user_streaks"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    current_streak = db.Column(db.Integer, nullable=False, default=0)
    longest_streak = db.Column(db.Integer, nullable=False, default=0)
    last_activity_date = db.Column(db.Date, nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class ActivityLogEntry(db.Model):
    # No uniqueness on (user, date, type): the heatmap counts submissions.
    __tablename__ = "user_activity_log"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    activity_type = db.Column(db.String(50), nullable=False)
    activity_date = db.Column(db.Date, nullable=False, index=True)
    xp_earned = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class QuestionBankEntry(db.Model):
    __tablename__ = "question_bank"

    id = db.Column(db.Integer, primary_key=True)
    skill = db.Column(db.String(100), nullable=False, index=True)
    question = db.Column(db.Text, nullable=False)
    difficulty = db.Column(db.Integer, nullable=False, default=1)


class DailyTask(db.Model):
    __tablename__ = "daily_tasks"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    question = db.Column(db.Text, nullable=False)
    technology = db.Column(db.String(100), nullable=False, index=True)
    difficulty = db.Column(db.String(20), nullable=False, default="easy")
    xp_reward = db.Column(db.Integer, nullable=False, default=10)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "question": self.question,
            "technology": self.technology,
            "difficulty": self.difficulty,
            "xp_reward": self.xp_reward,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class CompletedTask(db.Model):
    __tablename__ = "user_completed_tasks"
    __table_args__ = (
        db.UniqueConstraint("user_id", "task_id", name="uq_completed_task_user"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    task_id = db.Column(db.Integer, db.ForeignKey("daily_tasks.id"), nullable=False)
    xp_earned = db.Column(db.Integer, nullable=False, default=10)
    completed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class InterviewResult(db.Model):
    __tablename__ = "interview_results"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    skill = db.Column(db.String(200), nullable=False, default="General")
    score = db.Column(db.Integer, nullable=False)
    total_questions = db.Column(db.Integer, nullable=False, default=6)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    xp_earned = db.Column(db.Integer, nullable=False, default=0)
    interview_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
