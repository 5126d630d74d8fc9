from typing import Any

from learnpath.core.errors import ParseError
from learnpath.core.json_parser import parse_llm_object
from learnpath.core.llm_provider import BaseLLMProvider, get_llm_provider
from learnpath.journey.models import QUESTION_TYPES, Step, StepProvenance


class BaseAgent:
    def __init__(self, provider: BaseLLMProvider | None = None):
        self.provider = provider or get_llm_provider()

    async def _complete_json(
        self,
        system_instruction: str,
        user_prompt: str,
        *,
        temperature: float,
        max_output_tokens: int,
    ) -> dict[str, Any]:
        text = await self.provider.complete(system_instruction, user_prompt, temperature, max_output_tokens)
        return parse_llm_object(text)


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def build_step(item: Any, step_number: int, provenance: StepProvenance) -> Step:
    """Turn one generated step object into a Step; raises ParseError when unusable."""
    if not isinstance(item, dict):
        raise ParseError(f"step {step_number} is not an object")
    content = _clean(item.get("content"))
    question = _clean(item.get("question"))
    if not content or not question:
        raise ParseError(f"step {step_number} is missing content or question")
    question_type = _clean(item.get("questionType")).lower()
    if question_type not in QUESTION_TYPES:
        question_type = "factual"
    hints = item.get("hints") or []
    if not isinstance(hints, list):
        hints = [hints]
    return Step(
        step_number=step_number,
        title=_clean(item.get("title")) or f"Step {step_number}",
        content=content,
        question=question,
        question_type=question_type,
        hints=tuple(_clean(h) for h in hints if _clean(h)),
        expected_answer=_clean(item.get("expectedAnswer")) or None,
        provenance=provenance,
    )
