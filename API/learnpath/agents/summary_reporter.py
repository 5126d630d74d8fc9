from learnpath.agents.base import BaseAgent
from learnpath.core.errors import ParseError
from learnpath.core.logging import DOMAIN_REPORTING, get_domain_logger
from learnpath.data.age_profiles import get_age_profile
from learnpath.journey.models import FollowUpTopic, Journey, JourneyStatus, JourneySummary, StudentResponse

logger = get_domain_logger(__name__, DOMAIN_REPORTING)

FOLLOW_UP_COUNT = 3
PERSISTENCE_RESPONSES = 5


def average_score(responses: list[StudentResponse]) -> float:
    if not responses:
        return 0.0
    return sum(r.score for r in responses) / len(responses)


def identify_strengths(responses: list[StudentResponse]) -> tuple[str, ...]:
    strengths: list[str] = []
    if responses:
        avg = average_score(responses)
        if avg >= 80:
            strengths.append("Excellent understanding")
        if avg >= 60:
            strengths.append("Good problem solving")
        if len(responses) >= PERSISTENCE_RESPONSES:
            strengths.append("Great persistence")
    return tuple(strengths) or ("Curious learner",)


def generate_achievements(journey: Journey) -> tuple[str, ...]:
    achievements: list[str] = []
    if journey.status == JourneyStatus.COMPLETED:
        achievements.append("🎉 Journey Completed!")
    if len(journey.responses) >= PERSISTENCE_RESPONSES:
        achievements.append("🌟 Dedicated Learner")
    if average_score(journey.responses) >= 80:
        achievements.append("🧠 Quick Thinker")
    return tuple(achievements)


class SummaryReporter(BaseAgent):
    def summarize(self, journey: Journey) -> JourneySummary:
        responses = list(journey.responses)
        finished_at = journey.completed_at or journey.abandoned_at
        duration = 0
        if finished_at is not None:
            duration = round((finished_at - journey.created_at).total_seconds() / 60)
        return JourneySummary(
            topic=journey.topic,
            steps_completed=len(responses),
            total_steps=len(journey.steps),
            average_score=round(average_score(responses)),
            duration_minutes=duration,
            strengths=identify_strengths(responses),
            achievements=generate_achievements(journey),
        )

    async def suggest_follow_ups(self, topic: str, age_group: str) -> list[FollowUpTopic]:
        """Ask for exactly three topics that go deeper into ``topic``. Failures propagate."""
        profile = get_age_profile(age_group)
        prompt = (
            f"A student just completed a learning journey about \"{topic}\".\n\n"
            f"Student Age Group: {profile.band} ({profile.description})\n"
            f"Learning Level: {profile.vocabulary_level}\n\n"
            f"Create {FOLLOW_UP_COUNT} specific follow-up topics that go DEEPER into \"{topic}\". Each must:\n"
            f"1. Build directly on concepts from \"{topic}\" - stay in the same subject area, never sideways\n"
            "2. Take understanding to the next level (advanced applications, deeper concepts, real-world uses)\n"
            f"3. Be appropriate for {profile.band} year olds\n"
            "4. Be presented as a specific, engaging question\n\n"
            "Return ONLY this JSON format (no markdown, no extra text):\n"
            "{\n"
            '  "suggestions": [\n'
            "    {\n"
            f'      "topic": "Specific question about a deeper aspect of {topic}",\n'
            f'      "description": "How this advances their knowledge of {topic}",\n'
            '      "difficulty": "intermediate",\n'
            '      "estimatedSteps": 5\n'
            "    }\n"
            "  ]\n"
            "}"
        )
        system = (
            "You are an educational AI that creates engaging follow-up learning paths for curious students. "
            "Return ONLY valid JSON without any markdown formatting or code blocks."
        )
        data = await self._complete_json(system, prompt, temperature=0.8, max_output_tokens=800)

        raw = data.get("suggestions")
        if not isinstance(raw, list):
            raise ParseError("follow-up response has no suggestions list")
        suggestions: list[FollowUpTopic] = []
        for item in raw:
            if not isinstance(item, dict) or not str(item.get("topic") or "").strip():
                continue
            try:
                estimated = int(item.get("estimatedSteps", 5))
            except (TypeError, ValueError):
                estimated = 5
            suggestions.append(
                FollowUpTopic(
                    topic=str(item["topic"]).strip(),
                    description=str(item.get("description") or "").strip(),
                    difficulty=str(item.get("difficulty") or "intermediate"),
                    estimated_steps=estimated,
                )
            )
        if len(suggestions) < FOLLOW_UP_COUNT:
            raise ParseError(f"expected {FOLLOW_UP_COUNT} follow-up topics, got {len(suggestions)}")
        logger.info("Generated follow-up topics | topic=%s", topic)
        return suggestions[:FOLLOW_UP_COUNT]
