from dataclasses import dataclass
from typing import Any, Optional

from flask import current_app

from services.activity_service import ActivityAggregator
from services.evaluation_service import AnswerEvaluator
from services.interview_service import InterviewEngine
from services.llm_client import build_llm_client
from services.question_service import QuestionSource
from services.results_service import ResultsService
from services.store import Store
from services.streak_service import StreakTracker, today_in
from services.task_service import TaskService


EXTENSION_KEY = "gyanix"


@dataclass
class Services:
    llm_client: Optional[Any]
    store: Store
    question_source: QuestionSource
    evaluator: AnswerEvaluator
    interviews: InterviewEngine
    streaks: StreakTracker
    activity: ActivityAggregator
    tasks: TaskService
    results: ResultsService

    @property
    def llm_available(self) -> bool:
        return self.llm_client is not None


def build_services(config, llm_client=None, store=None, today=None, rng=None) -> Services:
    """Assemble every component from configuration; explicit arguments override."""
    if llm_client is None:
        llm_client = build_llm_client(config)
    if store is None:
        store = Store(enabled=bool(config.get("DATABASE_URL")))
    if today is None:
        today = today_in(config.get("ACTIVITY_TIMEZONE", "UTC"))
    total_questions = int(config.get("INTERVIEW_TOTAL_QUESTIONS", 6))

    question_source = QuestionSource.build(llm_client, store, total_questions=total_questions, rng=rng)
    evaluator = AnswerEvaluator(llm_client, rng=rng)
    tasks = TaskService(
        store,
        evaluator,
        passing_score=float(config.get("PASSING_SCORE", 6)),
        default_xp=int(config.get("DEFAULT_TASK_XP", 10)),
        timezone_name=config.get("ACTIVITY_TIMEZONE", "UTC"),
        today=today,
    )

    return Services(
        llm_client=llm_client,
        store=store,
        question_source=question_source,
        evaluator=evaluator,
        interviews=InterviewEngine(store, question_source, evaluator, total_questions=total_questions),
        streaks=StreakTracker(store, today=today),
        activity=ActivityAggregator(store, today=today, window_days=int(config.get("HEATMAP_DAYS", 365))),
        tasks=tasks,
        results=ResultsService(store, default_total_questions=total_questions),
    )


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
