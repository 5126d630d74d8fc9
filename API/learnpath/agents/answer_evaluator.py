"""
Answer Evaluator: relevance check and graded, age-appropriate feedback.

Both calls are masked: an infrastructure failure must never block a learner, so
relevance defaults to True and grading defaults to a positive effort score.
"""
import json

from learnpath.agents.base import BaseAgent
from learnpath.core.errors import LearnpathError
from learnpath.core.logging import DOMAIN_EVALUATION, get_domain_logger
from learnpath.core.settings import settings
from learnpath.data.age_profiles import AgeProfile, get_age_profile
from learnpath.journey.models import EvaluationResult, Step

logger = get_domain_logger(__name__, DOMAIN_EVALUATION)

SCORING_GUIDELINES = (
    "Scoring Guidelines:\n"
    "- 80-100: Fully correct, shows good understanding\n"
    "- 50-79: Partially correct, on the right track but needs improvement\n"
    "- 0-49: Incorrect or shows misunderstanding"
)

BAND_GRADING: dict[str, tuple[str, str, str]] = {
    # learner noun, grading guidance, message description
    "5-7": (
        "A 5-7 year old",
        "- ANY attempt to answer should be praised enthusiastically\n"
        "- Use simple words and lots of excitement (\"Wow!\", \"Great job!\")\n"
        "- Focus on effort rather than being perfectly correct\n"
        "- Keep feedback very short (1-2 sentences)",
        "Super encouraging feedback with simple words and excitement",
    ),
    "8-10": (
        "An 8-10 year old",
        "- Acknowledge their thinking process\n"
        "- Explain WHY their answer is right or wrong in simple terms\n"
        "- Give them credit for good reasoning even if the conclusion is wrong\n"
        "- Help them see the next step in their thinking",
        "Encouraging feedback that explains their thinking",
    ),
    "11-13": (
        "An 11-13 year old",
        "- Treat them as capable learners who can handle constructive feedback\n"
        "- Point out both strengths and areas for improvement\n"
        "- Ask them to think deeper or consider other perspectives\n"
        "- Use subject-appropriate vocabulary",
        "Constructive feedback that builds analytical skills",
    ),
    "14-17": (
        "A 14-17 year old",
        "- Provide sophisticated, respectful feedback\n"
        "- Challenge them to consider multiple perspectives or implications\n"
        "- Use academic language and higher-order thinking prompts",
        "Sophisticated feedback that challenges higher-order thinking",
    ),
}

EFFORT_CREDIT: dict[str, str] = {
    "5-7": "be generous - effort counts a lot!",
    "8-10": "credit good reasoning",
    "11-13": "grade the reasoning as well as the conclusion",
    "14-17": "grade rigorously",
}


def _clamp_score(value) -> int:
    if isinstance(value, bool):
        raise ValueError(f"score is not numeric: {value!r}")
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"score is not numeric: {value!r}") from exc
    return max(0, min(100, score))


class AnswerEvaluator(BaseAgent):
    async def check_relevance(self, answer: str, question: str, topic: str) -> bool:
        prompt = (
            f"Is this student answer relevant to the question about {topic}?\n\n"
            f"Question: \"{question}\"\n"
            f"Student Answer: \"{answer}\"\n\n"
            "Return only \"true\" if the answer attempts to address the question (even if incorrect), "
            "or \"false\" if it's completely off-topic."
        )
        system = (
            "You are evaluating if a student answer is relevant to a question. Be lenient - consider "
            "answers relevant if they show any attempt to engage with the topic."
        )
        try:
            text = await self.provider.complete(system, prompt, 0.1, 10)
        except LearnpathError as exc:
            logger.warning(json.dumps({"type": "relevance_fallback", "topic": topic, "error": str(exc)}))
            return True
        return "true" in text.lower()

    @staticmethod
    def build_prompt(answer: str, step: Step, topic: str, profile: AgeProfile) -> str:
        learner, guidance, message_hint = BAND_GRADING[profile.band]
        return (
            f"{learner} is learning about {topic} and just answered a question.\n\n"
            f"Question: \"{step.question}\"\n"
            f"Learner's Answer: \"{answer}\"\n"
            + (f"What a good answer covers: {step.expected_answer}\n" if step.expected_answer else "")
            + f"\nFor this age group:\n{guidance}\n\n"
            f"{SCORING_GUIDELINES}\n\n"
            "Return ONLY this JSON:\n"
            "{\n"
            f'  "message": "{message_hint}",\n'
            '  "isCorrect": true/false (true only for scores 80+),\n'
            f'  "score": 0-100 ({EFFORT_CREDIT[profile.band]})\n'
            "}"
        )

    @staticmethod
    def default_feedback(age_group: str) -> EvaluationResult:
        profile = get_age_profile(age_group)
        # The fallback is always marked correct.
        return EvaluationResult(
            message=profile.default_feedback,
            score=settings.default_feedback_score,
            is_correct=True,
            source="default",
        )

    async def evaluate(self, answer: str, step: Step, topic: str, age_group: str) -> EvaluationResult:
        profile = get_age_profile(age_group)
        system = (
            f"You are a supportive teacher providing age-appropriate feedback to a {profile.band} year old student.\n\n"
            f"FEEDBACK STYLE FOR {profile.band}: {profile.feedback_style}\n"
            f"VOCABULARY LEVEL: {profile.vocabulary}\n"
            f"ENCOURAGEMENT APPROACH: {profile.encouragement_style}\n\n"
            "Always be encouraging and constructive while matching their developmental level."
        )
        try:
            data = await self._complete_json(
                system,
                self.build_prompt(answer, step, topic, profile),
                temperature=0.7,
                max_output_tokens=300,
            )
            message = str(data.get("message") or "").strip()
            if not message or "score" not in data:
                raise ValueError("evaluation is missing message or score")
            score = _clamp_score(data["score"])
        except (LearnpathError, ValueError) as exc:
            logger.warning(
                json.dumps(
                    {"type": "evaluation_fallback", "topic": topic, "age_group": profile.band, "error": str(exc)}
                )
            )
            return self.default_feedback(profile.band)

        return EvaluationResult(
            message=message,
            score=score,
            is_correct=score >= settings.correct_score_threshold,
        )
