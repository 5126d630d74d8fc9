"""
Quiz Synthesizer: end-of-journey comprehensive assessment.

Combines the completed journey with optional prior learning context supplied
by the host. There is no template fallback: an unusable quiz is an error.
"""
import json

from learnpath.agents.base import BaseAgent
from learnpath.agents.summary_reporter import SummaryReporter
from learnpath.core.errors import JourneyNotCompletedError, ParseError
from learnpath.core.logging import DOMAIN_REPORTING, get_domain_logger
from learnpath.data.age_profiles import AgeProfile, get_age_profile
from learnpath.journey.models import Journey, JourneyStatus, Quiz, QuizQuestion

logger = get_domain_logger(__name__, DOMAIN_REPORTING)

STEP_EXCERPT_CHARS = 150
MIN_LEARNING_CHARS = 50
LEARNING_EXCERPT_CHARS = 200
MAX_KEY_LEARNINGS = 10
PRACTICE_QUIZ_SIZE = 5


def compile_context(external_context: list | None) -> dict:
    """Extract prior topics and key learnings from host-supplied conversation items."""
    if not external_context:
        return {"topics": [], "key_learnings": [], "total_interactions": 0}

    topics: list[str] = []
    key_learnings: list[str] = []
    for item in external_context:
        if not isinstance(item, dict):
            continue
        metadata = item.get("metadata") or {}
        if item.get("mode") != "learn" or not metadata.get("isLearningPath"):
            continue
        if metadata.get("stepType") == "journey_complete":
            topic = metadata.get("topic") or "Unknown Topic"
            if topic not in topics:
                topics.append(topic)
        content = item.get("content")
        if isinstance(content, str) and len(content) > MIN_LEARNING_CHARS:
            key_learnings.append(content[:LEARNING_EXCERPT_CHARS])

    return {
        "topics": topics,
        "key_learnings": key_learnings[-MAX_KEY_LEARNINGS:],
        "total_interactions": len(external_context),
    }


class QuizSynthesizer(BaseAgent):
    def __init__(self, provider=None, reporter: SummaryReporter | None = None):
        super().__init__(provider)
        self.reporter = reporter or SummaryReporter(self.provider)

    @staticmethod
    def _system_instruction(profile: AgeProfile) -> str:
        return (
            f"You are an expert educational assessor creating age-appropriate quizzes for {profile.band} year olds.\n\n"
            f"QUIZ REQUIREMENTS FOR {profile.band}:\n"
            f"- Question Count: {profile.quiz_question_count}\n"
            f"- Question Types: {profile.quiz_question_types}\n"
            f"- Vocabulary: {profile.vocabulary}\n"
            f"- Complexity: {profile.quiz_complexity}\n"
            "- Response Format: Return ONLY valid JSON without markdown formatting\n\n"
            "Create questions that test understanding across ALL the learning content provided, "
            "not just the most recent topic."
        )

    def build_prompt(self, journey: Journey, profile: AgeProfile, context: dict) -> str:
        steps = "\n".join(
            f"{i + 1}. {step.title}: {step.content[:STEP_EXCERPT_CHARS]}" for i, step in enumerate(journey.steps)
        )
        progress = "\n".join(
            f"- Q: {r.question} | A: {r.answer} | Score: {r.score}%" for r in journey.responses
        ) or "- No answers recorded"
        summary = self.reporter.summarize(journey)
        has_context = bool(context["topics"] or context["key_learnings"])

        sections = [
            f"Create a comprehensive learning quiz for a {profile.band} year old student.\n",
            "MAIN LEARNING JOURNEY COMPLETED:",
            f"Topic: \"{journey.topic}\"",
            f"Learning Steps Covered:\n{steps}\n",
            f"Student's Learning Progress (average score {summary.average_score}%):\n{progress}\n",
        ]
        if has_context:
            learnings = "\n".join(f"- {text[:100]}" for text in context["key_learnings"])
            sections.append(
                "PREVIOUS LEARNING CONTEXT:\n"
                f"Topics Previously Explored: {', '.join(context['topics']) or 'None'}\n"
                f"Recent Key Learnings:\n{learnings}\n"
            )
        requirements = [
            f"- Create exactly {profile.quiz_question_count} questions",
            f"- Question types: {profile.quiz_question_types}",
            f"- Test understanding of the ENTIRE learning journey: \"{journey.topic}\"",
        ]
        if has_context:
            requirements.append("- Include some questions that connect to previous learning topics")
        requirements.append(f"- Use {profile.vocabulary} vocabulary level")
        requirements.append(f"- Questions should be {profile.complexity} complexity")
        sections.append("QUIZ REQUIREMENTS:\n" + "\n".join(requirements) + "\n")
        sections.append(
            "Return this exact JSON format:\n"
            "{\n"
            f'  "title": "Quiz title appropriate for {profile.band} year olds",\n'
            '  "description": "Brief description of what this quiz tests",\n'
            '  "questions": [\n'
            "    {\n"
            '      "id": 1,\n'
            '      "question": "Question text here",\n'
            '      "type": "multiple_choice",\n'
            '      "options": [{"letter": "A", "text": "Option A"}, {"letter": "B", "text": "Option B"}],\n'
            '      "correctAnswer": "A",\n'
            '      "explanation": "Age-appropriate explanation of why this is correct"\n'
            "    }\n"
            "  ],\n"
            '  "learningObjectives": ["What students should demonstrate"],\n'
            f'  "ageGroup": "{profile.band}",\n'
            f'  "totalQuestions": {profile.quiz_question_count}\n'
            "}"
        )
        return "\n".join(sections)

    @staticmethod
    def _parse_question(item: dict, index: int) -> QuizQuestion:
        options = []
        for pos, option in enumerate(item.get("options") or []):
            if isinstance(option, dict):
                options.append({"letter": str(option.get("letter") or chr(65 + pos)), "text": str(option.get("text") or "")})
            else:
                options.append({"letter": chr(65 + pos), "text": str(option)})
        question = str(item.get("question") or "").strip()
        if not question:
            raise ParseError(f"quiz question {index} has no text")
        try:
            question_id = int(item.get("id") or index)
        except (TypeError, ValueError):
            question_id = index
        return QuizQuestion(
            id=question_id,
            question=question,
            type=str(item.get("type") or "multiple_choice"),
            options=tuple(options),
            correct_answer=str(item.get("correctAnswer") or ""),
            explanation=str(item.get("explanation") or ""),
        )

    async def generate(self, journey: Journey, external_context: list | None = None) -> Quiz:
        if journey.status != JourneyStatus.COMPLETED:
            raise JourneyNotCompletedError(journey.thread_id, journey.status.value)

        profile = get_age_profile(journey.age_group)
        context = compile_context(external_context)
        logger.info(
            json.dumps(
                {
                    "type": "quiz_requested",
                    "thread_id": journey.thread_id,
                    "topic": journey.topic,
                    "age_group": profile.band,
                    "journey_steps": len(journey.steps),
                    "context_items": context["total_interactions"],
                }
            )
        )
        data = await self._complete_json(
            self._system_instruction(profile),
            self.build_prompt(journey, profile, context),
            temperature=0.7,
            max_output_tokens=1500,
        )

        raw_questions = data.get("questions")
        if not isinstance(raw_questions, list) or not raw_questions:
            raise ParseError("quiz has no questions")
        questions = tuple(
            self._parse_question(item, i + 1)
            for i, item in enumerate(raw_questions)
            if isinstance(item, dict)
        )
        if not questions:
            raise ParseError("quiz has no usable questions")
        objectives = data.get("learningObjectives") or []
        if not isinstance(objectives, list):
            objectives = [objectives]

        logger.info("Quiz generated | thread_id=%s | questions=%s", journey.thread_id, len(questions))
        return Quiz(
            title=str(data.get("title") or f"{journey.topic} Quiz").strip(),
            description=str(data.get("description") or "").strip(),
            questions=questions,
            learning_objectives=tuple(str(o) for o in objectives),
            age_group=profile.band,
            total_questions=len(questions),
        )

    @staticmethod
    def practice_quiz(journey: Journey) -> dict:
        if journey.status != JourneyStatus.COMPLETED:
            raise JourneyNotCompletedError(journey.thread_id, journey.status.value)
        return {
            "topic": journey.topic,
            "questions": list(journey.practice_questions[:PRACTICE_QUIZ_SIZE]),
            "type": "practice_quiz",
        }
