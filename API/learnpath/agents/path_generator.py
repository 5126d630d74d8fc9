"""
Path Generator: produces the full multi-step curriculum for a topic in one call.

Prompts differ radically by age band. The call must return a JSON block; any
provider or parse failure propagates so the caller decides what to do with it.
"""
import json

from learnpath.agents.base import BaseAgent, build_step
from learnpath.core.errors import ParseError
from learnpath.core.logging import DOMAIN_GENERATION, get_domain_logger
from learnpath.data.age_profiles import AgeProfile, get_age_profile
from learnpath.journey.models import GeneratedPath, StepProvenance

logger = get_domain_logger(__name__, DOMAIN_GENERATION)

STEP_JSON_SHAPE = """{
    "stepNumber": 1,
    "title": "Step title",
    "content": "Information to share",
    "question": "One specific question about this content",
    "questionType": "factual|subjective|application",
    "expectedAnswer": "Brief description of what constitutes a good answer",
    "hints": ["Hint 1 if the learner struggles", "Hint 2"]
  }"""

BAND_GUIDANCE: dict[str, str] = {
    "5-7": (
        "Create a super simple learning path about \"{topic}\" for 5-7 year olds (kindergarten-1st grade).\n\n"
        "CRITICAL REQUIREMENTS:\n"
        "- ONLY {step_count} very short steps\n"
        "- Each step = 1-2 sentences maximum\n"
        "- Use simple words a 6-year-old knows\n"
        "- Make it fun with animals, colors, or characters they love\n"
        "- Questions should be YES/NO or \"What do you see?\" type\n"
        "- No abstract concepts: everything must be touchable or visible\n\n"
        "APPROACH:\n"
        "- Start with \"Let's pretend...\" or \"Imagine...\"\n"
        "- Compare everything to toys, animals, or family\n"
        "- Make it feel like a game, not a lesson\n"
    ),
    "8-10": (
        "Create a learning path about \"{topic}\" for 8-10 year olds (2nd-4th grade).\n\n"
        "CRITICAL REQUIREMENTS:\n"
        "- {step_count} clear steps that build on each other\n"
        "- Use school-appropriate vocabulary but explain new words\n"
        "- Mix concrete examples with beginning \"why\" questions\n"
        "- Include hands-on activities they can imagine doing\n"
        "- Connect to their everyday experiences (school, home, friends)\n\n"
        "APPROACH:\n"
        "- Start with something they already know, then expand\n"
        "- Use analogies from their world (classroom, playground, family)\n"
        "- Make them feel like young scientists or explorers\n"
    ),
    "11-13": (
        "Create a learning path about \"{topic}\" for 11-13 year olds (5th-7th grade).\n\n"
        "CRITICAL REQUIREMENTS:\n"
        "- {step_count} sophisticated steps with logical connections\n"
        "- Use subject-specific vocabulary with clear definitions\n"
        "- Include cause-and-effect relationships and systems thinking\n"
        "- Ask analytical questions that require reasoning, comparison and evaluation\n"
        "- Connect to broader concepts and real-world applications\n\n"
        "APPROACH:\n"
        "- Present information like they're capable students (no baby talk)\n"
        "- Include multiple perspectives and ask them to analyze and compare\n"
        "- Make them feel like junior experts\n"
    ),
    "14-17": (
        "Create a learning path about \"{topic}\" for 14-17 year olds (8th-12th grade).\n\n"
        "CRITICAL REQUIREMENTS:\n"
        "- {step_count} advanced steps with theoretical depth\n"
        "- Use academic vocabulary and complex concepts\n"
        "- Include abstract thinking, competing theories and meta-cognition\n"
        "- Ask evaluative and synthesis-level questions\n"
        "- Connect to career applications, college prep, and real-world implications\n\n"
        "APPROACH:\n"
        "- Treat them as emerging adults with sophisticated thinking\n"
        "- Ask them to evaluate evidence, create, design, or propose solutions\n"
        "- Challenge assumptions and encourage original thinking\n"
    ),
}


def band_guidance(profile: AgeProfile, topic: str) -> str:
    return BAND_GUIDANCE[profile.band].format(topic=topic, step_count=profile.step_count)


def curriculum_system_instruction(profile: AgeProfile) -> str:
    return (
        "You are an expert educational curriculum designer specializing in age-differentiated learning paths.\n\n"
        f"AGE GROUP: {profile.band} - {profile.description}\n"
        f"LEARNING APPROACH: {profile.learning_approach}\n"
        f"COMPLEXITY LEVEL: {profile.complexity}\n"
        f"ATTENTION SPAN: {profile.attention_span}\n"
        f"DRAW EXAMPLES FROM: {profile.examples}\n\n"
        "Create content that matches their cognitive development stage. Always respond with valid JSON."
    )


class PathGenerator(BaseAgent):
    def build_prompt(self, topic: str, profile: AgeProfile) -> str:
        return (
            f"{band_guidance(profile, topic)}\n"
            "Return a JSON object with this structure:\n"
            "{\n"
            f'  "title": "Engaging journey title about {topic}",\n'
            f'  "topic": {json.dumps(topic)},\n'
            f'  "ageGroup": "{profile.band}",\n'
            f'  "estimatedDuration": "{profile.duration}",\n'
            f'  "steps": [\n  {STEP_JSON_SHAPE}\n  ],\n'
            '  "completionMessage": "Age-appropriate congratulation message",\n'
            '  "practiceQuestions": ["Practice question 1", "Practice question 2", "Practice question 3"]\n'
            "}\n"
            f"The steps array must contain exactly {profile.step_count} steps."
        )

    async def generate(self, topic: str, age_group: str) -> GeneratedPath:
        profile = get_age_profile(age_group)
        logger.info(
            "Generating learning path | topic=%s | age_group=%s | steps=%s | approach=%s",
            topic,
            profile.band,
            profile.step_count,
            profile.learning_approach,
        )
        data = await self._complete_json(
            curriculum_system_instruction(profile),
            self.build_prompt(topic, profile),
            temperature=profile.temperature,
            max_output_tokens=profile.max_output_tokens,
        )

        raw_steps = data.get("steps")
        if not isinstance(raw_steps, list) or not raw_steps:
            raise ParseError("generated path has no steps")
        if len(raw_steps) < profile.step_count:
            raise ParseError(f"generated path has {len(raw_steps)} steps, expected {profile.step_count}")
        steps = tuple(
            build_step(item, index + 1, StepProvenance.PLANNED)
            for index, item in enumerate(raw_steps[: profile.step_count])
        )
        practice = data.get("practiceQuestions") or []
        if not isinstance(practice, list):
            practice = []

        logger.info("Learning path generated | topic=%s | steps=%s", topic, len(steps))
        return GeneratedPath(
            title=str(data.get("title") or f"Exploring {topic}").strip(),
            steps=steps,
            completion_message=str(data.get("completionMessage") or "").strip(),
            practice_questions=tuple(str(q).strip() for q in practice if str(q).strip()),
        )
