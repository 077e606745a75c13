"""Content-generation oracle backed by Gemini.

The canvas only relies on the `Oracle` protocol below. `GeminiOracle` talks
to the Gemini API; `PlaceholderOracle` stands in when no API key is
configured so the rest of the application behaves the same either way.
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence, TYPE_CHECKING

import google.generativeai as genai

if TYPE_CHECKING:
    from thoughtcanvas.config import Settings

logger = logging.getLogger(__name__)


EXPANSION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "nodes": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "content": {"type": "STRING"},
                    "type": {"type": "STRING", "format": "enum", "enum": ["concept"]},
                },
                "required": ["content", "type"],
            },
        },
    },
    "required": ["nodes"],
}

EXPANSION_PROMPT = """
You are a helpful visual thinking assistant.
The user has a thought: "{content}".
Generate 3 to 5 distinctly related sub-concepts or follow-up questions to expand this thought map.
Keep the content concise (under 6 words) and set every "type" to "concept".
Avoid duplicates from this list: {existing}.
"""

LABEL_PROMPT = (
    'What is a short, logical linking verb or phrase (max 3 words) that connects '
    '"{from_content}" to "{to_content}"? e.g., "causes", "leads to", "requires". '
    'Return only the phrase.'
)

PLACEHOLDER_SUGGESTIONS = ("Missing API Key", "Check Environment")
PLACEHOLDER_LABEL = "connects to"


class OracleError(Exception):
    """The oracle could not produce a usable answer."""


@dataclass(frozen=True)
class Suggestion:
    """One proposed node."""
    content: str
    kind: str = "concept"


class Oracle(Protocol):
    async def expand(self, content: str, existing: Sequence[str]) -> List[Suggestion]:
        ...

    async def suggest_label(self, from_content: str, to_content: str) -> str:
        ...


def parse_expansion(text: str) -> List[Suggestion]:
    """Validate an expansion payload: {"nodes": [{"content": str, "type": "concept"}]}.

    An empty payload is an empty answer. Anything that does not match the
    schema raises OracleError.
    """
    if not text or not text.strip():
        return []

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise OracleError(f"Expansion payload is not JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("nodes"), list):
        raise OracleError("Expansion payload has no 'nodes' list")

    suggestions = []
    for item in data["nodes"]:
        if not isinstance(item, dict):
            raise OracleError(f"Expansion item is not an object: {item!r}")
        content = item.get("content")
        kind = item.get("type")
        if not isinstance(content, str) or kind != "concept":
            raise OracleError(f"Expansion item does not match schema: {item!r}")
        suggestions.append(Suggestion(content=content.strip()))
    return suggestions


class GeminiOracle:
    """Oracle that asks a Gemini model for suggestions."""

    def __init__(self, api_key: str, model_name: str):
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self._model = genai.GenerativeModel(model_name=model_name)

    async def expand(self, content: str, existing: Sequence[str]) -> List[Suggestion]:
        prompt = EXPANSION_PROMPT.format(content=content, existing=", ".join(existing))
        config = genai.GenerationConfig(
            response_mime_type="application/json",
            response_schema=EXPANSION_SCHEMA,
        )
        text = await self._generate(prompt, config)
        suggestions = parse_expansion(text)
        logger.info("Gemini proposed %d node(s) for %r", len(suggestions), content)
        return suggestions

    async def suggest_label(self, from_content: str, to_content: str) -> str:
        prompt = LABEL_PROMPT.format(from_content=from_content, to_content=to_content)
        config = genai.GenerationConfig(temperature=0.2, max_output_tokens=16)
        text = await self._generate(prompt, config)
        return (text or "").strip()

    async def _generate(self, prompt: str, config) -> str:
        try:
            response = await self._model.generate_content_async(
                prompt, generation_config=config
            )
            return response.text
        except Exception as exc:  # pylint: disable=broad-except
            raise OracleError(f"Gemini request failed ({self.model_name}): {exc}") from exc


class PlaceholderOracle:
    """Deterministic stand-in used when no API key is configured."""

    async def expand(self, content: str, existing: Sequence[str]) -> List[Suggestion]:
        logger.warning("No Gemini API key configured; returning placeholder suggestions")
        return [Suggestion(content=text) for text in PLACEHOLDER_SUGGESTIONS]

    async def suggest_label(self, from_content: str, to_content: str) -> str:
        return PLACEHOLDER_LABEL


def create_oracle(settings: "Settings") -> Oracle:
    """Pick the oracle implementation for the given settings."""
    if not settings.api_key:
        return PlaceholderOracle()
    return GeminiOracle(api_key=settings.api_key, model_name=settings.model_name)
