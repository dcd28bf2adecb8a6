"""TranslationClient tests against a mocked Google Translate endpoint."""

import json

import httpx
import pytest

from hoa_platform.infra.translation_client import TranslationClient


def _client(handler):
    return TranslationClient(
        api_key="test-key",
        languages=["en", "ar"],
        default_language="en",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _google(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    if request.url.path.endswith("/detect"):
        return httpx.Response(200, json={"data": {"detections": [[{"language": "en"}]]}})
    return httpx.Response(
        200, json={"data": {"translations": [{"translatedText": f"[{body['target']}] {body['q']}"}]}}
    )


async def test_to_multi_language_builds_record():
    client = _client(_google)

    record = await client.to_multi_language("Fix the AC")

    assert record == {"en": "Fix the AC", "ar": "[ar] Fix the AC"}


async def test_unsupported_detected_language_uses_default():
    def handler(request):
        return httpx.Response(200, json={"data": {"detections": [[{"language": "fr"}]]}})

    assert await _client(handler).detect_language("Bonjour") == "en"


async def test_translation_failure_returns_source_text():
    def handler(request):
        if request.url.path.endswith("/detect"):
            return httpx.Response(200, json={"data": {"detections": [[{"language": "en"}]]}})
        return httpx.Response(500)

    record = await _client(handler).to_multi_language("Fix the AC")

    assert record == {"en": "Fix the AC", "ar": "Fix the AC"}


async def test_no_api_key_copies_text():
    client = TranslationClient(api_key="", languages=["en", "ar"], default_language="en")

    assert await client.to_multi_language("Hello") == {"en": "Hello", "ar": "Hello"}


@pytest.mark.parametrize("text", ["", "   "])
async def test_blank_text_skips_network(text):
    def handler(request):
        raise AssertionError("no request expected")

    record = await _client(handler).to_multi_language(text)

    assert record == {"en": text, "ar": text}
