import json
import logging
import math
import random
from dataclasses import asdict, dataclass

from errors import LlmError
from services.outcome import Outcome


logger = logging.getLogger(__name__)

MIN_SCORE = 0.0
MAX_SCORE = 10.0
DEFAULT_PASSING_SCORE = 6.0


@dataclass(frozen=True)
class Evaluation:
    score: float
    feedback: str
    strengths: str = ""
    improvements: str = ""

    def to_dict(self):
        return asdict(self)


# Returned when the model answered but we could not use its output.
UNPARSEABLE_EVALUATION = Evaluation(
    score=5,
    feedback="Unable to fully evaluate the answer. Please review manually.",
    strengths="Answer was provided",
    improvements="Could not parse evaluation",
)


def clamp_score(value) -> float:
    """Coerce any model-supplied score into [0, 10]; unusable values become 0."""
    if isinstance(value, bool):
        value = 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0.0
    if math.isnan(number):
        number = 0.0
    return max(MIN_SCORE, min(MAX_SCORE, number))


def is_passing(score, threshold: float = DEFAULT_PASSING_SCORE) -> bool:
    return clamp_score(score) >= threshold


def strip_code_fence(text: str) -> str:
    # Strip markdown fences if present.
    raw = (text or "").strip()
    if raw.startswith("```"):
        lines = raw.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        raw = "\n".join(lines).strip()
    return raw


def parse_evaluation(text: str) -> Evaluation:
    payload = json.loads(strip_code_fence(text))
    if not isinstance(payload, dict):
        raise ValueError("evaluation payload is not a JSON object")
    return Evaluation(
        score=clamp_score(payload.get("score")),
        feedback=str(payload.get("feedback") or ""),
        strengths=str(payload.get("strengths") or ""),
        improvements=str(payload.get("improvements") or ""),
    )


def build_evaluation_prompt(question: str, answer: str, skills) -> str:
    return f"""
You are a technical interviewer evaluating a candidate's answer.

Question: {question}

Candidate's Answer: {answer}

Candidate's Skills: {", ".join(skills)}

Evaluate the answer based on:
1. Technical accuracy
2. Completeness
3. Clarity of explanation
4. Practical understanding

Respond in this exact JSON format (no markdown, just JSON):
{{
    "score": <number from 0 to 10>,
    "feedback": "<brief constructive feedback, 1-2 sentences>",
    "strengths": "<what they did well, if any>",
    "improvements": "<what could be improved, if any>"
}}
""".strip()


class AnswerEvaluator:
    """Scores a free-text answer with the LLM, never failing the caller."""

    def __init__(self, llm_client=None, rng=None):
        self.llm_client = llm_client
        self.rng = rng or random.Random()

    @property
    def is_available(self) -> bool:
        return self.llm_client is not None

    def _unavailable_evaluation(self) -> Evaluation:
        return Evaluation(
            score=self.rng.randint(6, 8),
            feedback="Your answer has been recorded. Detailed AI evaluation is temporarily unavailable.",
            strengths="Answer was provided",
            improvements="Enable an AI provider for detailed feedback",
        )

    def evaluate(self, question: str, answer: str, skills=None) -> Outcome:
        skills = [str(skill) for skill in (skills or [])]

        if not self.is_available:
            logger.info("Using fallback evaluation (LLM not configured)")
            return Outcome.degraded(self._unavailable_evaluation(), "llm not configured", source="placeholder")

        prompt = build_evaluation_prompt(question, answer, skills)
        try:
            text = self.llm_client.complete(prompt, temperature=0.2)
        except LlmError as exc:
            logger.warning("LLM evaluation failed: %s", exc)
            return Outcome.degraded(UNPARSEABLE_EVALUATION, f"llm error: {exc}", source="default")

        try:
            evaluation = parse_evaluation(text)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError.
            logger.warning("LLM evaluation parse failed: %s. Raw text: %s", exc, (text or "")[:500])
            return Outcome.degraded(UNPARSEABLE_EVALUATION, f"unparseable evaluation: {exc}", source="default")

        return Outcome.ok(evaluation, source=self.llm_client.name)
