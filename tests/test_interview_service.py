import pytest
from sqlalchemy import text

from errors import ConflictError, NotFoundError, ValidationError
from models import InterviewAnswer, InterviewSession, db
from services.evaluation_service import Evaluation
from services.interview_service import InterviewEngine, is_ephemeral, round_half_up
from services.outcome import Outcome
from services.question_service import QuestionSource
from services.store import STALE_WRITE_ATTEMPTS, Store

from conftest import NoDatabaseConfig


class FixedEvaluator:
    """Hands out the queued scores in order, repeating the last one."""

    def __init__(self, *scores):
        self.scores = list(scores)
        self.calls = []

    def evaluate(self, question, answer, skills=None):
        self.calls.append((question, answer, list(skills or [])))
        score = self.scores.pop(0) if len(self.scores) > 1 else self.scores[0]
        return Outcome.ok(Evaluation(score=score, feedback="ok"), source="fixed")


class RecordingSource:
    def __init__(self):
        self.calls = []

    def get_question(self, skills, question_number, previous_questions=None):
        self.calls.append((list(skills), question_number, list(previous_questions or [])))
        return Outcome.ok(f"Question {question_number}", source="recording")


def _engine(store, evaluator, total_questions=6, source=None):
    source = source or QuestionSource.build(llm_client=None, store=Store(enabled=False))
    return InterviewEngine(store, source, evaluator, total_questions=total_questions)


def _run_interview(engine, skills, user_id=None):
    started = engine.start(skills, user_id=user_id)
    question = started.question.value
    asked = []
    result = None
    for number in range(1, engine.total_questions + 1):
        result = engine.submit(started.session_id, number, question, f"My answer to {number}", skills, asked)
        asked.append(question)
        if not result.is_complete:
            question = result.next_question.value
    return started, result


def test_full_interview_averages_persisted_scores(app):
    engine = _engine(Store(enabled=True), FixedEvaluator(7))

    started, result = _run_interview(engine, ["JavaScript"], user_id="user-1")

    assert started.persisted
    assert started.to_dict()["totalQuestions"] == 6
    assert result.is_complete
    assert result.average_score == 7.0
    session = db.session.get(InterviewSession, started.session_id)
    assert session.status == "completed"
    assert session.completed_questions == 6
    assert session.average_score == pytest.approx(7.0)
    assert session.completed_at is not None
    assert InterviewAnswer.query.filter_by(session_id=started.session_id).count() == 6


def test_average_is_rounded_to_one_decimal(app):
    engine = _engine(Store(enabled=True), FixedEvaluator(4, 5, 6, 7, 8, 9.25))
    _, result = _run_interview(engine, ["Python"])
    assert result.average_score == round_half_up((4 + 5 + 6 + 7 + 8 + 9.25) / 6)
    assert result.average_score == 6.5


def test_submit_progresses_and_passes_previous_questions(app):
    source = RecordingSource()
    engine = _engine(Store(enabled=True), FixedEvaluator(8), source=source)
    started = engine.start([{"name": "Go"}, "Docker"])

    result = engine.submit(started.session_id, 1, "Question 1", "Goroutines are cheap threads", ["Go"], [])

    assert result.to_dict() == {
        "isComplete": False,
        "evaluation": {"score": 8, "feedback": "ok", "strengths": "", "improvements": ""},
        "nextQuestionNumber": 2,
        "nextQuestion": "Question 2",
    }
    assert source.calls == [(["Go", "Docker"], 1, []), (["Go"], 2, ["Question 1"])]
    assert db.session.get(InterviewSession, started.session_id).completed_questions == 1


def test_progress_never_moves_backwards(app):
    engine = _engine(Store(enabled=True), FixedEvaluator(6))
    started = engine.start(["SQL"])
    engine.submit(started.session_id, 3, "Q3", "answer three", ["SQL"])
    engine.submit(started.session_id, 2, "Q2", "answer two", ["SQL"])
    assert db.session.get(InterviewSession, started.session_id).completed_questions == 3


def test_duplicate_ordinal_is_a_conflict(app):
    engine = _engine(Store(enabled=True), FixedEvaluator(6))
    started = engine.start(["SQL"])
    engine.submit(started.session_id, 1, "Q1", "first answer", ["SQL"])

    with pytest.raises(ConflictError):
        engine.submit(started.session_id, 1, "Q1", "first answer again", ["SQL"])


class ContendedStore(Store):
    """Another writer bumps the session version right after each of the first ``bumps`` reads."""

    def __init__(self, bumps):
        super().__init__(enabled=True)
        self.bumps = bumps

    def get_session(self, session_id):
        session = super().get_session(session_id)
        if session is not None and self.bumps:
            self.bumps -= 1
            assert session.version is not None
            db.session.execute(
                text("UPDATE interview_sessions SET version = version + 1 WHERE id = :id"), {"id": session_id}
            )
        return session


def test_stale_session_write_is_reapplied(app):
    store = ContendedStore(bumps=1)
    engine = _engine(store, FixedEvaluator(8), total_questions=1)
    started = engine.start(["Rust"])

    result = engine.submit(started.session_id, 1, "Q1", "ownership and borrowing", ["Rust"])

    assert result.is_complete
    session = db.session.get(InterviewSession, started.session_id)
    assert session.status == "completed"
    assert session.completed_questions == 1
    assert session.average_score == pytest.approx(8.0)
    assert InterviewAnswer.query.filter_by(session_id=started.session_id).count() == 1


def test_persistent_contention_is_a_retryable_conflict(app):
    store = ContendedStore(bumps=0)
    engine = _engine(store, FixedEvaluator(6), total_questions=1)
    started = engine.start(["Rust"])

    store.bumps = STALE_WRITE_ATTEMPTS
    with pytest.raises(ConflictError):
        engine.submit(started.session_id, 1, "Q1", "lifetimes", ["Rust"])
    assert InterviewAnswer.query.filter_by(session_id=started.session_id).count() == 0

    # Nothing was written, so the caller's retry goes through.
    result = engine.submit(started.session_id, 1, "Q1", "lifetimes", ["Rust"])
    assert result.is_complete
    session = db.session.get(InterviewSession, started.session_id)
    assert session.status == "completed"
    assert session.completed_questions == 1


def test_completed_session_is_not_completed_twice(app):
    store = Store(enabled=True)
    engine = _engine(store, FixedEvaluator(9), total_questions=1)
    started = engine.start(["CSS"])
    engine.submit(started.session_id, 1, "Q1", "flexbox and grid", ["CSS"])
    completed_at = db.session.get(InterviewSession, started.session_id).completed_at

    # An extra ordinal past the end still reports completion without resetting the timestamp.
    result = engine.submit(started.session_id, 2, "Q2", "more about grid", ["CSS"])

    assert result.is_complete
    assert db.session.get(InterviewSession, started.session_id).completed_at == completed_at


def test_ephemeral_session_without_database(make_app):
    make_app(NoDatabaseConfig)
    engine = _engine(Store(enabled=False), FixedEvaluator(3, 9))

    started = engine.start(["HTML"])
    assert is_ephemeral(started.session_id)
    assert started.session_id.startswith("session_")
    assert not started.persisted

    engine.submit(started.session_id, 1, "Q1", "semantic tags", ["HTML"])
    result = engine.submit(started.session_id, 6, "Q6", "accessibility", ["HTML"])
    assert result.is_complete
    assert result.average_score == 9.0


def test_unknown_session_id_still_answers(app):
    engine = _engine(Store(enabled=True), FixedEvaluator(5))
    result = engine.submit("does-not-exist", 1, "Q1", "some answer", ["Java"])
    assert not result.is_complete
    assert "session not found" in result.degraded


@pytest.mark.parametrize("skills", [None, [], ["", "  "], [{"name": ""}]])
def test_start_requires_skills(app, skills):
    with pytest.raises(ValidationError):
        _engine(Store(enabled=True), FixedEvaluator(5)).start(skills)


@pytest.mark.parametrize(
    "question, answer, number",
    [
        ("", "answer", 1),
        ("Q", "   ", 1),
        ("Q", "answer", 0),
        ("Q", "answer", "two"),
        ("Q", "answer", 1.5),
        ("Q", "answer", float("inf")),
    ],
)
def test_submit_validation(app, question, answer, number):
    engine = _engine(Store(enabled=True), FixedEvaluator(5))
    with pytest.raises(ValidationError):
        engine.submit("session_1_abc", number, question, answer, ["Go"])


def test_results_and_history(app):
    engine = _engine(Store(enabled=True), FixedEvaluator(8))
    started, _ = _run_interview(engine, ["Kotlin"], user_id="user-7")

    results = engine.results(started.session_id)
    assert results["session"]["status"] == "completed"
    assert [answer["question_number"] for answer in results["answers"]] == [1, 2, 3, 4, 5, 6]

    history = engine.history("user-7")
    assert [item["id"] for item in history] == [started.session_id]

    with pytest.raises(NotFoundError):
        engine.results("session_123_abcdefghi")
