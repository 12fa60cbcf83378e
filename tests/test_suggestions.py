import asyncio

import pytest
from aiohttp import test_utils, web

from modelvault.errors import (
    ExternalSuggestionError,
    SuggestionNotConfiguredError,
    SuggestionTimeoutError,
    ValidationError,
)
from modelvault.services.suggestions import (
    MAX_SUGGESTED_TAGS,
    SuggestionClient,
    SuggestionEngine,
    build_prompt,
    extract_json_array,
    local_suggest,
)


class FakeClient:
    def __init__(self, reply: str = "", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


def test_local_suggest_drops_versions_and_short_tokens() -> None:
    tags = local_suggest("Bracket_Mount_v2_FINAL.stl", "stl")
    assert set(tags) <= {"bracket", "mount", "stl"}
    assert tags == ["bracket", "mount", "stl"]


def test_local_suggest_strips_extension_case_insensitively() -> None:
    assert local_suggest("Gear X.3MF", "3mf") == ["gear", "3mf"]


def test_local_suggest_caps_at_eight() -> None:
    tags = local_suggest("aa-bb-cc-dd-ee-ff-gg-hh-ii-jj.stl", "stl")
    assert len(tags) == MAX_SUGGESTED_TAGS
    assert tags[0] == "aa"


def test_local_suggest_dedupes_tokens() -> None:
    assert local_suggest("stl_box_box.stl", "stl") == ["stl", "box"]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('Sure! Here you go: ["Bracket", "mount"] Enjoy.', ["Bracket", "mount"]),
        ('["a"]', ["a"]),
        ("no array here", []),
        ("[not json]", []),
        ("[1", []),
        ("", []),
        (None, []),
    ],
)
def test_extract_json_array(text, expected) -> None:
    assert extract_json_array(text) == expected


def test_build_prompt_mentions_file_and_json() -> None:
    prompt = build_prompt("Benchy.stl", "stl")
    assert "Benchy.stl" in prompt
    assert "JSON array" in prompt
    assert "lowercase" in prompt


def test_external_reply_is_normalized() -> None:
    client = FakeClient('Tags: ["Boat", "Calibration Print", "boat", "", "PLA"]')
    engine = SuggestionEngine(client)
    tags = asyncio.run(engine.suggest("Benchy.stl", "stl", strategy="external"))
    assert tags == ["boat", "calibration print", "pla"]
    assert "Benchy.stl" in client.prompts[0]


def test_external_reply_is_capped() -> None:
    reply = str([f"tag{i}" for i in range(12)]).replace("'", '"')
    engine = SuggestionEngine(FakeClient(reply))
    tags = asyncio.run(engine.suggest("Benchy.stl", "stl", strategy="external"))
    assert tags == [f"tag{i}" for i in range(8)]


def test_external_unusable_reply_falls_back_to_heuristic() -> None:
    engine = SuggestionEngine(FakeClient("I cannot help with that."))
    tags = asyncio.run(engine.suggest("Cable_Clip.stl", "stl", strategy="external"))
    assert tags == ["cable", "clip", "stl"]


def test_external_without_client_is_a_configuration_error() -> None:
    engine = SuggestionEngine()
    with pytest.raises(SuggestionNotConfiguredError):
        asyncio.run(engine.suggest("Cable_Clip.stl", "stl", strategy="external"))


def test_auto_without_client_uses_heuristic() -> None:
    engine = SuggestionEngine()
    assert asyncio.run(engine.suggest("Cable_Clip.stl", "stl")) == ["cable", "clip", "stl"]


def test_external_failure_is_not_silently_replaced() -> None:
    error = ExternalSuggestionError("boom", status=503, body="overloaded")
    engine = SuggestionEngine(FakeClient(error=error))
    with pytest.raises(ExternalSuggestionError) as excinfo:
        asyncio.run(engine.suggest("Cable_Clip.stl", "stl", strategy="auto"))
    assert not isinstance(excinfo.value, SuggestionNotConfiguredError)
    assert excinfo.value.status == 503


def test_unknown_strategy_rejected() -> None:
    with pytest.raises(ValidationError):
        asyncio.run(SuggestionEngine().suggest("a.stl", "stl", strategy="magic"))


def test_client_requires_url_and_model() -> None:
    with pytest.raises(SuggestionNotConfiguredError):
        SuggestionClient(base_url="", model="m")


async def _serve(handler, call):
    app = web.Application()
    app.router.add_post("/v1/chat/completions", handler)
    async with test_utils.TestServer(app) as server:
        return await call(str(server.make_url("/v1")))


def test_client_reads_chat_completion_text() -> None:
    seen = {}

    async def handler(request: web.Request) -> web.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = await request.json()
        return web.json_response({"choices": [{"message": {"content": '["gear"]'}}]})

    async def call(base_url: str) -> str:
        client = SuggestionClient(base_url=base_url, model="tagger", api_key="secret")
        return await client.complete("hello")

    assert asyncio.run(_serve(handler, call)) == '["gear"]'
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["model"] == "tagger"
    assert seen["body"]["messages"][0]["content"] == "hello"


def test_client_surfaces_upstream_status_and_body() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=502, text="upstream exploded")

    async def call(base_url: str):
        client = SuggestionClient(base_url=base_url, model="tagger")
        with pytest.raises(ExternalSuggestionError) as excinfo:
            await client.complete("hello")
        return excinfo.value

    error = asyncio.run(_serve(handler, call))
    assert error.status == 502
    assert error.body == "upstream exploded"
    assert "502" in str(error)


def test_client_times_out() -> None:
    async def handler(request: web.Request) -> web.Response:
        await asyncio.sleep(1)
        return web.json_response({"choices": []})

    async def call(base_url: str):
        client = SuggestionClient(base_url=base_url, model="tagger", timeout=0.1)
        with pytest.raises(SuggestionTimeoutError):
            await client.complete("hello")

    asyncio.run(_serve(handler, call))


def test_client_connection_failure_has_no_status() -> None:
    async def call():
        client = SuggestionClient(base_url="http://127.0.0.1:1/v1", model="tagger", timeout=5)
        with pytest.raises(ExternalSuggestionError) as excinfo:
            await client.complete("hello")
        return excinfo.value

    error = asyncio.run(call())
    assert error.status is None
    assert not isinstance(error, SuggestionTimeoutError)


@pytest.mark.parametrize("value", [["[\"a\"]"], {"text": "[\"a\"]"}, 42])
def test_extract_json_array_ignores_non_text(value) -> None:
    assert extract_json_array(value) == []


@pytest.mark.parametrize(
    "payload",
    [
        {"choices": [{"message": {"content": [{"type": "text", "text": 'Tags: ["Gear", '}, {"type": "text", "text": '"Spur"]'}]}}]},
        {"choices": [{"text": '["gear", "spur"]'}]},
    ],
)
def test_client_reads_content_parts(payload) -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.json_response(payload)

    async def call(base_url: str) -> list[str]:
        engine = SuggestionEngine(SuggestionClient(base_url=base_url, model="tagger"))
        return await engine.suggest("Gear.stl", "stl", strategy="external")

    assert asyncio.run(_serve(handler, call)) == ["gear", "spur"]


@pytest.mark.parametrize(
    "payload",
    [
        {"choices": ["x"]},
        {"choices": [{"message": "plain"}]},
        {"choices": [{"message": {"content": [{"type": "image"}, 7]}}]},
        {"choices": {"message": "not a list"}},
        {"response": 12},
    ],
)
def test_unrecognized_reply_falls_back_to_heuristic(payload) -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.json_response(payload)

    async def call(base_url: str) -> list[str]:
        engine = SuggestionEngine(SuggestionClient(base_url=base_url, model="tagger"))
        return await engine.suggest("Cable_Clip.stl", "stl", strategy="external")

    assert asyncio.run(_serve(handler, call)) == ["cable", "clip", "stl"]


def test_client_treats_unfollowed_redirect_as_failure() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=300, text="pick one")

    async def call(base_url: str):
        client = SuggestionClient(base_url=base_url, model="tagger")
        with pytest.raises(ExternalSuggestionError) as excinfo:
            await client.complete("hello")
        return excinfo.value

    error = asyncio.run(_serve(handler, call))
    assert error.status == 300
    assert error.body == "pick one"
