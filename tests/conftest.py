import json
import random
import sys
from datetime import date
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import create_app
from config import Config
from errors import LlmError
from services.container import EXTENSION_KEY


TODAY = date(2024, 3, 15)


class SqliteConfig(Config):
    TESTING = True
    DATABASE_URL = "sqlite://"
    LLM_PROVIDER = "none"
    LLM_REQUIRED_FOR_INTERVIEW = False
    LOG_LEVEL = "WARNING"


class NoDatabaseConfig(SqliteConfig):
    DATABASE_URL = ""


class StubLlm:
    """Records prompts and answers them with ``responder(prompt)``."""

    name = "stub"

    def __init__(self, responder=None, error=None):
        self.responder = responder or (lambda prompt: "")
        self.error = error
        self.prompts = []

    def complete(self, prompt, temperature=0.7):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.responder(prompt)


def interview_responder(score=7, question="How would you design a rate limiter?"):
    def _respond(prompt):
        if "evaluating a candidate's answer" in prompt:
            return json.dumps(
                {
                    "score": score,
                    "feedback": "Solid answer.",
                    "strengths": "Clear structure",
                    "improvements": "Mention trade-offs",
                }
            )
        return question

    return _respond


@pytest.fixture
def make_app():
    contexts = []

    def _make(config=SqliteConfig, **overrides):
        overrides.setdefault("today", lambda: TODAY)
        overrides.setdefault("rng", random.Random(7))
        app = create_app(config, **overrides)
        ctx = app.app_context()
        ctx.push()
        contexts.append(ctx)
        return app

    yield _make
    for ctx in reversed(contexts):
        ctx.pop()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture
def failing_llm():
    return StubLlm(error=LlmError("upstream timeout"))
