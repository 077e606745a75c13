import json

import pytest

from thoughtcanvas import oracle as oracle_mod
from thoughtcanvas.config import Settings
from thoughtcanvas.oracle import (
    EXPANSION_SCHEMA,
    PLACEHOLDER_LABEL,
    GeminiOracle,
    OracleError,
    PlaceholderOracle,
    Suggestion,
    create_oracle,
    parse_expansion,
)


def test_parse_expansion_valid_payload():
    payload = json.dumps({"nodes": [
        {"content": " Root causes ", "type": "concept"},
        {"content": "Next steps", "type": "concept"},
    ]})
    assert parse_expansion(payload) == [Suggestion("Root causes"), Suggestion("Next steps")]


def test_parse_expansion_empty_text_is_empty_answer():
    assert parse_expansion("") == []
    assert parse_expansion("   ") == []
    assert parse_expansion('{"nodes": []}') == []


@pytest.mark.parametrize("payload", [
    "not json",
    "[]",
    '{"items": []}',
    '{"nodes": "many"}',
    '{"nodes": ["bare string"]}',
    '{"nodes": [{"content": 5, "type": "concept"}]}',
    '{"nodes": [{"content": "x", "type": "note"}]}',
    '{"nodes": [{"content": "x"}]}',
])
def test_parse_expansion_rejects_schema_mismatch(payload):
    with pytest.raises(OracleError):
        parse_expansion(payload)


async def test_placeholder_oracle_is_deterministic():
    placeholder = PlaceholderOracle()
    first = await placeholder.expand("anything", [])
    second = await placeholder.expand("something else", ["x"])
    assert first == second == [Suggestion("Missing API Key"), Suggestion("Check Environment")]
    assert await placeholder.suggest_label("a", "b") == PLACEHOLDER_LABEL


def test_create_oracle_without_key_uses_placeholder():
    assert isinstance(create_oracle(Settings(api_key="")), PlaceholderOracle)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, model_name):
        self.model_name = model_name
        self.prompts = []
        self.reply = ""
        self.error = None

    async def generate_content_async(self, prompt, generation_config=None):
        self.prompts.append((prompt, generation_config))
        if self.error:
            raise self.error
        return FakeResponse(self.reply)


@pytest.fixture
def gemini(monkeypatch):
    configured = {}
    monkeypatch.setattr(oracle_mod.genai, "configure", lambda **kw: configured.update(kw))
    monkeypatch.setattr(oracle_mod.genai, "GenerativeModel", FakeModel)
    client = create_oracle(Settings(api_key="secret", model_name="gemini-test"))
    assert configured == {"api_key": "secret"}
    return client


def test_create_oracle_with_key_uses_gemini(gemini):
    assert isinstance(gemini, GeminiOracle)
    assert gemini.model_name == "gemini-test"


async def test_gemini_expand_sends_context_and_parses(gemini):
    model = gemini._model
    model.reply = json.dumps({"nodes": [{"content": "Solar", "type": "concept"}]})

    result = await gemini.expand("Energy", ["Energy", "Wind"])

    assert result == [Suggestion("Solar")]
    prompt, _config = model.prompts[0]
    assert '"Energy"' in prompt
    assert "Energy, Wind" in prompt


async def test_gemini_label_is_stripped(gemini):
    gemini._model.reply = "  leads to\n"
    assert await gemini.suggest_label("Rain", "Flood") == "leads to"


async def test_gemini_errors_become_oracle_errors(gemini):
    gemini._model.error = RuntimeError("503 unavailable")
    with pytest.raises(OracleError):
        await gemini.expand("x", [])
    with pytest.raises(OracleError):
        await gemini.suggest_label("a", "b")


async def test_gemini_malformed_payload_is_an_oracle_error(gemini):
    gemini._model.reply = '{"nodes": [{"text": "wrong key"}]}'
    with pytest.raises(OracleError):
        await gemini.expand("x", [])


def test_expansion_schema_only_allows_concepts():
    item = EXPANSION_SCHEMA["properties"]["nodes"]["items"]
    assert item["properties"]["type"]["enum"] == ["concept"]
    assert item["required"] == ["content", "type"]


async def test_gemini_expand_requests_json_with_schema(gemini):
    gemini._model.reply = '{"nodes": []}'
    await gemini.expand("x", [])
    _prompt, config = gemini._model.prompts[0]
    assert config.response_mime_type == "application/json"
    assert config.response_schema is EXPANSION_SCHEMA
