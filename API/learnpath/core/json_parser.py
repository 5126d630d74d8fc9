import json
import re

from learnpath.core.errors import ParseError

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


def _candidates(text: str):
    candidate = text.strip()
    yield candidate
    for match in _FENCE.finditer(candidate):
        yield match.group(1).strip()
    # First JSON object/array if the model wrapped content in prose.
    match = re.search(r"(\{.*\}|\[.*\])", candidate, re.DOTALL)
    if match:
        yield match.group(1)


def parse_llm_json(text: str):
    """Extract the first JSON value from generated text.

    Tolerates markdown code fences and surrounding prose. Raises ParseError
    when no JSON value can be recovered.
    """
    if not text or not text.strip():
        raise ParseError("empty completion", raw_text=text or "")
    for snippet in _candidates(text):
        try:
            return json.loads(snippet)
        except (TypeError, ValueError):
            continue
    raise ParseError("no JSON block found in completion", raw_text=text)


def parse_llm_object(text: str) -> dict:
    value = parse_llm_json(text)
    if not isinstance(value, dict):
        raise ParseError(f"expected a JSON object, got {type(value).__name__}", raw_text=text)
    return value
