"""Templated first steps served before the planned path is generated."""

from __future__ import annotations

import random

from learnpath.data.age_profiles import DEFAULT_AGE_BAND

QUICK_START_QUESTIONS: dict[str, tuple[str, ...]] = {
    "5-7": (
        "Have you ever seen something about {topic}? What did it look like?",
        "Do you think {topic} is big or small?",
        "What is one thing you already know about {topic}?",
    ),
    "8-10": (
        "What do you already know about {topic}?",
        "Where have you noticed {topic} in your everyday life?",
        "Why do you think {topic} is important?",
    ),
    "11-13": (
        "What do you think is the most important idea behind {topic}, and why?",
        "How would you explain {topic} to a friend who has never heard of it?",
        "What questions do you have about how {topic} works?",
    ),
    "14-17": (
        "What assumptions do people commonly make about {topic}, and are they justified?",
        "How does {topic} connect to other subjects or issues you care about?",
        "If you had to research {topic}, which question would you start with and why?",
    ),
}

QUICK_START_INTROS: dict[str, tuple[str, ...]] = {
    "5-7": (
        "Let's go on a fun adventure to discover {topic}! 🌈",
        "Imagine we are explorers looking for {topic}! 🔍",
    ),
    "8-10": (
        "Let's explore {topic} together, step by step!",
        "Get ready, young scientist: today we are investigating {topic}!",
    ),
    "11-13": (
        "Let's dig into {topic} and figure out how it really works.",
        "Today we will analyze {topic} from a few different angles.",
    ),
    "14-17": (
        "Let's examine {topic} critically and build a deeper understanding.",
        "We'll approach {topic} the way a researcher would: question first.",
    ),
}


class QuickStartSelector:
    """Picks the quick-start question and intro. Seed it for reproducible picks."""

    def __init__(self, seed: int | None = None, rng: random.Random | None = None):
        self._rng = rng or random.Random(seed)

    def select(self, topic: str, age_group: str) -> tuple[str, str]:
        band = age_group if age_group in QUICK_START_QUESTIONS else DEFAULT_AGE_BAND
        question = self._rng.choice(QUICK_START_QUESTIONS[band])
        intro = self._rng.choice(QUICK_START_INTROS[band])
        return intro.format(topic=topic), question.format(topic=topic)
