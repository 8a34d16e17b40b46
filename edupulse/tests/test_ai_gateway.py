import pytest
from aiohttp import web
from aiohttp import test_utils

from edupulse.core.errors import AIGatewayError, ConfigurationError
from edupulse.services.ai_gateway import AIGateway

COMPLETIONS_PATH = "/v1/chat/completions"


def gateway_for(server=None, **overrides):
    config = {
        "url": str(server.make_url(COMPLETIONS_PATH)) if server else "http://127.0.0.1:9/v1/chat/completions",
        "api_key": "test-key",
        "model": "test-model",
        "timeout": 5,
        "max_attempts": 3,
        "backoff_multiplier": 0,
        "backoff_max": 0,
    }
    config.update(overrides)
    return AIGateway(config)


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_string_prompt_becomes_user_message():
    assert AIGateway.build_messages("hello") == [{"role": "user", "content": "hello"}]


def test_image_is_attached_to_last_user_turn():
    messages = AIGateway.build_messages(
        [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "read this"},
        ],
        image="data:image/png;base64,AAAA"
    )
    assert messages[0] == {"role": "system", "content": "sys"}
    assert messages[1]["content"] == [
        {"type": "text", "text": "read this"},
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
    ]


async def test_missing_api_key():
    with pytest.raises(ConfigurationError):
        await gateway_for(api_key=None).chat_complete("hello")


async def test_posts_model_and_messages():
    received = []

    async def handler(request):
        received.append((request.headers.get("Authorization"), await request.json()))
        return web.json_response(completion("hi there"))

    app = web.Application()
    app.router.add_post(COMPLETIONS_PATH, handler)

    async with test_utils.TestServer(app) as server:
        reply = await gateway_for(server).chat_complete("hello")

    assert reply == "hi there"
    auth, body = received[0]
    assert auth == "Bearer test-key"
    assert body == {"model": "test-model", "messages": [{"role": "user", "content": "hello"}]}


async def test_retries_transient_failures():
    calls = []

    async def handler(request):
        calls.append(1)
        if len(calls) < 3:
            return web.Response(status=503, text="busy")
        return web.json_response(completion("recovered"))

    app = web.Application()
    app.router.add_post(COMPLETIONS_PATH, handler)

    async with test_utils.TestServer(app) as server:
        reply = await gateway_for(server).chat_complete("hello")

    assert reply == "recovered"
    assert len(calls) == 3


async def test_client_errors_are_not_retried():
    calls = []

    async def handler(request):
        calls.append(1)
        return web.Response(status=402, text="payment required")

    app = web.Application()
    app.router.add_post(COMPLETIONS_PATH, handler)

    async with test_utils.TestServer(app) as server:
        with pytest.raises(AIGatewayError) as exc_info:
            await gateway_for(server).chat_complete("hello")

    assert exc_info.value.details == {"status": 402}
    assert len(calls) == 1


async def test_rate_limit_gives_up_after_max_attempts():
    calls = []

    async def handler(request):
        calls.append(1)
        return web.Response(status=429, text="slow down")

    app = web.Application()
    app.router.add_post(COMPLETIONS_PATH, handler)

    async with test_utils.TestServer(app) as server:
        with pytest.raises(AIGatewayError):
            await gateway_for(server, max_attempts=2).chat_complete("hello")

    assert len(calls) == 2


async def test_response_without_choices():
    async def handler(request):
        return web.json_response({"error": "nope"})

    app = web.Application()
    app.router.add_post(COMPLETIONS_PATH, handler)

    async with test_utils.TestServer(app) as server:
        with pytest.raises(AIGatewayError):
            await gateway_for(server).chat_complete("hello")


def test_null_content_is_empty_text():
    assert AIGateway._extract_content(completion(None)) == ""
