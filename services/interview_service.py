"""Interview session lifecycle: start, per-answer submission, completion.

Session ids that start with ``session_`` are ephemeral tokens handed out when
nothing could be persisted; they are never looked up in the store.
"""
import logging
import math
import time
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import uuid4

from errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from services.outcome import Outcome
from services.question_service import normalize_skills


logger = logging.getLogger(__name__)

DEFAULT_TOTAL_QUESTIONS = 6
EPHEMERAL_PREFIX = "session_"


def ephemeral_session_id() -> str:
    return f"{EPHEMERAL_PREFIX}{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def is_ephemeral(session_id) -> bool:
    return not session_id or str(session_id).startswith(EPHEMERAL_PREFIX)


def round_half_up(value: float, digits: int = 1) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _parse_question_number(raw) -> int:
    if isinstance(raw, bool):
        raise ValidationError("questionNumber must be a positive integer")
    try:
        number = int(raw)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("questionNumber must be a positive integer")
    if number < 1 or number != float(raw):
        raise ValidationError("questionNumber must be a positive integer")
    return number


@dataclass
class StartResult:
    session_id: str
    question_number: int
    total_questions: int
    question: Outcome
    persisted: bool

    def to_dict(self):
        return {
            "sessionId": self.session_id,
            "questionNumber": self.question_number,
            "totalQuestions": self.total_questions,
            "question": self.question.value,
        }


@dataclass
class SubmitResult:
    is_complete: bool
    evaluation: Outcome
    average_score: Optional[float] = None
    next_question_number: Optional[int] = None
    next_question: Optional[Outcome] = None
    degraded: List[str] = field(default_factory=list)

    def to_dict(self):
        payload = {
            "isComplete": self.is_complete,
            "evaluation": self.evaluation.value.to_dict(),
        }
        if self.is_complete:
            payload["averageScore"] = self.average_score
        else:
            payload["nextQuestionNumber"] = self.next_question_number
            payload["nextQuestion"] = self.next_question.value
        return payload


class InterviewEngine:
    def __init__(self, store, question_source, evaluator, total_questions: int = DEFAULT_TOTAL_QUESTIONS):
        self.store = store
        self.question_source = question_source
        self.evaluator = evaluator
        self.total_questions = total_questions

    def _persistent(self, session_id) -> bool:
        return self.store.is_available and not is_ephemeral(session_id)

    def start(self, skills, user_id=None) -> StartResult:
        skill_names = normalize_skills(skills)
        if not skill_names:
            raise ValidationError("Skills array is required")

        session_id = None
        if self.store.is_available:
            try:
                session_id = self.store.create_session(user_id, skill_names, self.total_questions)
            except (PersistenceError, ConflictError) as exc:
                logger.error("Error creating session: %s", exc)
        persisted = session_id is not None
        if not persisted:
            session_id = ephemeral_session_id()

        question = self.question_source.get_question(skill_names, 1, [])
        logger.info("Interview %s started for %s (%s)", session_id, user_id or "anonymous", ", ".join(skill_names))
        return StartResult(
            session_id=session_id,
            question_number=1,
            total_questions=self.total_questions,
            question=question,
            persisted=persisted,
        )

    def submit(
        self,
        session_id,
        question_number,
        question,
        answer,
        skills=None,
        previous_questions=None,
        user_id=None,
    ) -> SubmitResult:
        question = (question or "").strip()
        answer = (answer or "").strip()
        if not question or not answer:
            raise ValidationError("Question and answer are required")
        question_number = _parse_question_number(question_number)
        skill_names = normalize_skills(skills)

        evaluation = self.evaluator.evaluate(question, answer, skill_names)
        score = evaluation.value.score
        degraded = list(evaluation.reasons)

        is_last = question_number >= self.total_questions
        session = None
        if self._persistent(session_id):
            session = self._record(
                session_id, question_number, question, answer, evaluation.value, is_last, degraded
            )

        if is_last:
            average = self._average(session_id, session, score, degraded)
            logger.info("Interview %s completed with average %.1f", session_id, average)
            return SubmitResult(
                is_complete=True,
                evaluation=evaluation,
                average_score=average,
                degraded=degraded,
            )

        asked = list(previous_questions or []) + [question]
        next_question = self.question_source.get_question(skill_names, question_number + 1, asked)
        degraded.extend(next_question.reasons)
        return SubmitResult(
            is_complete=False,
            evaluation=evaluation,
            next_question_number=question_number + 1,
            next_question=next_question,
            degraded=degraded,
        )

    def _record(self, session_id, question_number, question, answer, evaluation, complete, degraded):
        """Store the answer; conflicts propagate, other failures are reported as degraded."""
        try:
            session = self.store.record_answer(
                session_id,
                question_number,
                question,
                answer,
                evaluation.score,
                evaluation.feedback,
                complete=complete,
            )
        except PersistenceError as exc:
            logger.error("Error storing answer: %s", exc)
            degraded.append("answer not stored")
            return None
        if session is None:
            logger.warning("Unknown interview session %s; answer not stored", session_id)
            degraded.append("session not found")
        return session

    def _average(self, session_id, session, current_score, degraded) -> float:
        average = float(current_score)
        if session is None:
            return round_half_up(average)

        try:
            scores = [answer.score for answer in self.store.answers_for_session(session_id)]
        except PersistenceError as exc:
            logger.error("Error reading answers for %s: %s", session_id, exc)
            degraded.append("answers unavailable")
            scores = []
        if scores:
            average = sum(float(value) for value in scores) / len(scores)
        return round_half_up(average)

    def results(self, session_id):
        session = None if is_ephemeral(session_id) else self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        answers = self.store.answers_for_session(session_id)
        return {
            "session": session.to_dict(),
            "answers": [answer.to_dict() for answer in answers],
        }

    def history(self, user_id):
        return [session.to_dict() for session in self.store.sessions_for_user(user_id)]
