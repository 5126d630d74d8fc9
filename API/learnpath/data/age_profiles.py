"""Per-age-band learning configuration: pacing, vocabulary, tone and quiz sizing."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_AGE_BAND = "8-10"


@dataclass(frozen=True)
class AgeProfile:
    band: str
    description: str
    step_count: int
    complexity: str
    learning_approach: str
    attention_span: str
    duration: str
    vocabulary: str
    vocabulary_level: str
    question_types: str
    examples: str
    max_output_tokens: int
    temperature: float
    feedback_style: str
    encouragement_style: str
    quiz_question_count: int
    quiz_question_types: str
    quiz_complexity: str
    default_feedback: str
    default_completion_message: str


AGE_PROFILES: dict[str, AgeProfile] = {
    "5-7": AgeProfile(
        band="5-7",
        description="Early learners discovering the world",
        step_count=3,
        complexity="very simple",
        learning_approach="play-based discovery with stories and characters",
        attention_span="5-8 minutes total",
        duration="5-8 minutes",
        vocabulary="kindergarten level (500-1000 words)",
        vocabulary_level="Simple words and concepts",
        question_types="yes/no, what do you see, which one",
        examples="toys, animals, family, colors, shapes",
        max_output_tokens=800,
        temperature=0.9,
        feedback_style="enthusiastic praise with simple words and emojis",
        encouragement_style="celebrate effort and curiosity like a proud parent",
        quiz_question_count=3,
        quiz_question_types="simple multiple choice with pictures, yes/no questions",
        quiz_complexity="very basic with familiar examples",
        default_feedback="Wow! 🌟 You're thinking so hard! That shows you're learning. Let's keep going together!",
        default_completion_message="Hooray! 🎉 You finished our adventure! You are a super explorer!",
    ),
    "8-10": AgeProfile(
        band="8-10",
        description="Elementary students building foundations",
        step_count=4,
        complexity="concrete with beginning abstract concepts",
        learning_approach="guided exploration with hands-on connections",
        attention_span="10-15 minutes",
        duration="10-15 minutes",
        vocabulary="elementary level with explanations",
        vocabulary_level="Age-appropriate vocabulary with explanations",
        question_types="how, why (simple), what happens if",
        examples="school experiences, nature, community helpers",
        max_output_tokens=1200,
        temperature=0.8,
        feedback_style="encouraging explanation that builds understanding",
        encouragement_style="supportive teacher helping them grow as learners",
        quiz_question_count=4,
        quiz_question_types="multiple choice, true/false, simple application questions",
        quiz_complexity="elementary level testing understanding and application",
        default_feedback=(
            "Thanks for sharing your thinking! I can see you're working through this topic. "
            "Let's continue our exploration!"
        ),
        default_completion_message="Great job, young scientist! You explored every step of this topic.",
    ),
    "11-13": AgeProfile(
        band="11-13",
        description="Middle schoolers developing analytical skills",
        step_count=5,
        complexity="intermediate with system connections",
        learning_approach="problem-solving with multiple perspectives",
        attention_span="15-20 minutes",
        duration="15-20 minutes",
        vocabulary="grade-level academic vocabulary",
        vocabulary_level="More sophisticated vocabulary and concepts",
        question_types="analyze, compare, explain why, predict",
        examples="current events, technology, social issues",
        max_output_tokens=1600,
        temperature=0.7,
        feedback_style="constructive analysis that builds critical thinking",
        encouragement_style="respect their developing independence and capability",
        quiz_question_count=4,
        quiz_question_types="multiple choice, analysis questions, connection questions",
        quiz_complexity="intermediate level requiring reasoning and connections",
        default_feedback=(
            "I appreciate you taking time to think through that question. Your reasoning shows "
            "you're engaging with the material. Let's build on that!"
        ),
        default_completion_message="Well done! You worked through the whole journey and connected the big ideas.",
    ),
    "14-17": AgeProfile(
        band="14-17",
        description="High schoolers ready for complex thinking",
        step_count=6,
        complexity="advanced with theoretical depth",
        learning_approach="independent analysis and synthesis",
        attention_span="20-30 minutes",
        duration="20-30 minutes",
        vocabulary="advanced academic and professional terms",
        vocabulary_level="Advanced vocabulary and complex concepts",
        question_types="evaluate, synthesize, create, what if",
        examples="career applications, research, global issues",
        max_output_tokens=2000,
        temperature=0.6,
        feedback_style="sophisticated academic discourse with intellectual challenge",
        encouragement_style="treat as emerging adult scholars capable of deep thinking",
        quiz_question_count=4,
        quiz_question_types="multiple choice, analysis, synthesis, evaluation questions",
        quiz_complexity="advanced level requiring critical thinking and synthesis",
        default_feedback=(
            "Your response demonstrates thoughtful consideration of the topic. This kind of "
            "analytical thinking is exactly what deep learning requires."
        ),
        default_completion_message=(
            "You have completed this journey. Consider how these ideas connect to the questions you care about next."
        ),
    ),
}

AGE_BANDS: tuple[str, ...] = tuple(AGE_PROFILES)


def get_age_profile(band: str | None) -> AgeProfile:
    """Total lookup: unknown bands fall back to the 8-10 profile."""
    return AGE_PROFILES.get((band or "").strip(), AGE_PROFILES[DEFAULT_AGE_BAND])
