import logging
import random

from errors import LlmError, PersistenceError
from services.outcome import Outcome


logger = logging.getLogger(__name__)

# Local fallback when neither the LLM nor the question bank can answer.
FALLBACK_QUESTIONS = [
    "Explain the difference between let, const, and var in JavaScript. When would you use each?",
    "What is the event loop in JavaScript and how does it handle asynchronous operations?",
    "Describe the concept of closures in JavaScript with a practical example.",
    "What are the differences between REST and GraphQL APIs? When would you choose one over the other?",
    "Explain Big O notation and give examples of O(1), O(n), and O(n²) time complexity.",
    "What is the difference between authentication and authorization? How would you implement them?",
]


def normalize_skills(skills) -> list:
    """Accept plain names or ``{"name": ...}`` objects; drop blanks."""
    if skills is None:
        return []
    if isinstance(skills, (str, dict)):
        skills = [skills]
    names = []
    for skill in skills:
        if isinstance(skill, dict):
            skill = skill.get("name")
        if skill is None:
            continue
        name = str(skill).strip()
        if name:
            names.append(name)
    return names


def build_question_prompt(skills, question_number: int, total_questions: int, previous_questions) -> str:
    previous_block = ""
    if previous_questions:
        numbered = "\n".join(f"{index}. {text}" for index, text in enumerate(previous_questions, start=1))
        previous_block = f"Previous questions asked (avoid repeating similar topics):\n{numbered}\n"

    return f"""
You are a technical interviewer. Generate question #{question_number} of {total_questions} for a software developer interview.

The candidate has these skills: {", ".join(skills)}

{previous_block}
Requirements:
- Ask a practical, real-world technical question
- Focus on problem-solving, not just definitions
- Vary difficulty: questions 1-2 are easy, 3-4 medium, 5-6 hard
- Keep the question concise but clear
- Don't ask multi-part questions

Respond with ONLY the question text, nothing else.
""".strip()


class LlmQuestionStrategy:
    name = "llm"

    def __init__(self, llm_client, total_questions: int = 6):
        self.llm_client = llm_client
        self.total_questions = total_questions

    @property
    def is_available(self) -> bool:
        return self.llm_client is not None

    def produce(self, skills, question_number, previous_questions):
        prompt = build_question_prompt(skills, question_number, self.total_questions, previous_questions)
        try:
            text = self.llm_client.complete(prompt, temperature=0.7)
        except LlmError as exc:
            logger.warning("LLM question generation failed: %s", exc)
            return None
        return text.strip() or None


class QuestionBankStrategy:
    """Pick a stored question, spreading picks across the requested skills."""

    name = "question_bank"

    def __init__(self, store, total_questions: int = 6, rng=None):
        self.store = store
        self.total_questions = total_questions
        self.rng = rng or random.Random()

    @property
    def is_available(self) -> bool:
        return self.store is not None and self.store.is_available

    def candidates(self, skills) -> list:
        try:
            rows = self.store.question_bank(skills)
        except PersistenceError as exc:
            logger.warning("Question bank unreachable: %s", exc)
            return []
        if not rows:
            return []

        selected = []
        # One question per skill first.
        for skill in skills:
            if len(selected) >= self.total_questions:
                break
            for row in rows:
                if row.skill.lower() == skill.lower() and row.question not in selected:
                    selected.append(row.question)
                    break
        # Then fill with whatever is left.
        for row in rows:
            if len(selected) >= self.total_questions:
                break
            if row.question not in selected:
                selected.append(row.question)

        self.rng.shuffle(selected)
        return selected

    def produce(self, skills, question_number, previous_questions):
        pool = self.candidates(skills)
        if not pool:
            return None
        return pool[(question_number - 1) % len(pool)]


class StaticListStrategy:
    name = "static_list"
    is_available = True

    def __init__(self, questions=None):
        self.questions = list(questions or FALLBACK_QUESTIONS)

    def produce(self, skills, question_number, previous_questions):
        if 1 <= question_number <= len(self.questions):
            return self.questions[question_number - 1]
        return self.questions[0]


class QuestionSource:
    """Tries each strategy in order and returns the first question produced."""

    def __init__(self, strategies):
        self.strategies = list(strategies)

    @classmethod
    def build(cls, llm_client, store, total_questions: int = 6, rng=None):
        return cls(
            [
                LlmQuestionStrategy(llm_client, total_questions=total_questions),
                QuestionBankStrategy(store, total_questions=total_questions, rng=rng),
                StaticListStrategy(),
            ]
        )

    def get_question(self, skills, question_number: int, previous_questions=None) -> Outcome:
        skills = normalize_skills(skills)
        previous_questions = list(previous_questions or [])
        reasons = []

        for strategy in self.strategies:
            if not strategy.is_available:
                reasons.append(f"{strategy.name} not configured")
                continue
            question = strategy.produce(skills, question_number, previous_questions)
            if question:
                if reasons:
                    logger.info("Question #%s served by %s (%s)", question_number, strategy.name, "; ".join(reasons))
                    return Outcome.degraded(question, reasons, source=strategy.name)
                return Outcome.ok(question, source=strategy.name)
            reasons.append(f"{strategy.name} produced no question")

        # Only reachable with a custom chain that has no static tier.
        logger.error("No question strategy produced a question (%s)", "; ".join(reasons))
        return Outcome.degraded(FALLBACK_QUESTIONS[0], reasons, source=StaticListStrategy.name)
