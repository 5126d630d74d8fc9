import json

from learnpath.agents.base import BaseAgent, build_step
from learnpath.agents.path_generator import STEP_JSON_SHAPE, band_guidance
from learnpath.core.errors import LearnpathError
from learnpath.core.logging import DOMAIN_GENERATION, get_domain_logger
from learnpath.data.age_profiles import AgeProfile, get_age_profile
from learnpath.journey.models import Journey, Step, StepProvenance

logger = get_domain_logger(__name__, DOMAIN_GENERATION)

RECENT_RESPONSES = 2


class StepSynthesizer(BaseAgent):
    """Generates exactly one next step when the planned path is not ready."""

    @staticmethod
    def _system_instruction(profile: AgeProfile) -> str:
        return (
            "You are a patient tutor continuing a structured learning journey one step at a time.\n\n"
            f"AGE GROUP: {profile.band} - {profile.description}\n"
            f"LEARNING APPROACH: {profile.learning_approach}\n"
            f"VOCABULARY: {profile.vocabulary}\n"
            f"QUESTION STYLE: {profile.question_types}\n\n"
            "Always respond with a single valid JSON object."
        )

    def build_prompt(self, journey: Journey, profile: AgeProfile, step_number: int) -> str:
        covered = "\n".join(f"{step.step_number}. {step.title}" for step in journey.steps) or "None yet"
        recent = journey.responses[-RECENT_RESPONSES:]
        if recent:
            conversation = "\n".join(
                f"- Q: {r.question} | A: {r.answer} | Score: {r.score}" for r in recent
            )
        else:
            conversation = "- The learner has not answered yet."
        return (
            f"{band_guidance(profile, journey.topic)}\n"
            f"We are in the middle of this journey. Steps covered so far:\n{covered}\n\n"
            f"The learner's most recent answers:\n{conversation}\n\n"
            f"Write step {step_number} of {profile.step_count}. It must continue logically from the "
            "learner's answers above, build on what was covered, and not repeat earlier steps.\n"
            "Return ONLY one JSON object with this structure:\n"
            f"{STEP_JSON_SHAPE}\n"
            f"Use stepNumber {json.dumps(step_number)}."
        )

    async def synthesize_next(self, journey: Journey) -> Step | None:
        profile = get_age_profile(journey.age_group)
        step_number = len(journey.steps) + 1
        try:
            data = await self._complete_json(
                self._system_instruction(profile),
                self.build_prompt(journey, profile, step_number),
                temperature=profile.temperature,
                max_output_tokens=max(400, profile.max_output_tokens // 2),
            )
            step = build_step(data.get("step", data), step_number, StepProvenance.ON_DEMAND)
        except LearnpathError as exc:
            logger.warning(
                json.dumps(
                    {
                        "type": "step_synthesis_failed",
                        "thread_id": journey.thread_id,
                        "step_number": step_number,
                        "error": str(exc),
                    }
                )
            )
            return None
        logger.info("Synthesized on-demand step | thread_id=%s | step=%s", journey.thread_id, step_number)
        return step
