"""Shared fixtures. Environment is set before any booruhub module is imported."""

import os
import tempfile

_DATA_DIR = tempfile.mkdtemp(prefix="booruhub-test-")
os.environ["BOORUHUB_DATA_DIR"] = _DATA_DIR
os.environ["BOORUHUB_CACHE_DIR"] = os.path.join(_DATA_DIR, "image_cache")
os.environ["BOORUHUB_DATABASE_URL"] = "sqlite:///:memory:"

import asyncio
import io
import json

import pytest
from PIL import Image

from booruhub.services.booru import BooruAPIType, BooruSourceConfig


class FakeResponse:
    """Stand-in for requests.Response with the attributes the client reads."""

    def __init__(self, status_code=200, json_data=None, content=None, headers=None):
        self.status_code = status_code
        self._json_data = json_data
        if content is None and json_data is not None:
            content = json.dumps(json_data).encode()
        self.content = content or b""
        self.headers = headers or {}

    def json(self):
        return json.loads(self.content.decode() or "")


class FakeSession:
    """Records every GET and answers from a queue of responses or exceptions."""

    def __init__(self, *responses):
        self.headers = {}
        self.calls = []
        self._responses = list(responses)

    def queue(self, *responses):
        self._responses.extend(responses)

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeHTTP:
    """Adapter-level fake: returns canned JSON payloads and records the endpoint used."""

    def __init__(self, *payloads):
        self.payloads = list(payloads)
        self.calls = []

    async def fetch_json(self, url, params=None):
        self.calls.append((url, dict(params or {})))
        payload = self.payloads.pop(0)
        if isinstance(payload, Exception):
            raise payload
        return payload


class FakeService:
    """BooruService stand-in keyed by source name."""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []

    async def fetch_posts(self, source, tags=None, page=1, limit=40):
        self.calls.append((source.name, tags, page, limit))
        result = self.results[source.name]
        if callable(result):
            result = result(page)
        if isinstance(result, Exception):
            raise result
        return result


def run(coro):
    return asyncio.run(coro)


def make_source(name="Danbooru", api_type=BooruAPIType.danbooru, base_url=None, **kwargs):
    return BooruSourceConfig(
        name=name,
        base_url=base_url or f"https://{name.lower()}.example",
        api_type=api_type,
        **kwargs,
    )


def image_bytes(fmt="PNG", size=(8, 8), color=(200, 30, 30), mode="RGB"):
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture
def danbooru_source():
    return make_source("Danbooru", BooruAPIType.danbooru, "https://danbooru.donmai.us")


@pytest.fixture
def gelbooru_source():
    return make_source("Gelbooru", BooruAPIType.gelbooru, "https://gelbooru.com", api_key="KEY", user_id="42")


@pytest.fixture
def safebooru_source():
    return make_source("Safebooru", BooruAPIType.gelbooru, "https://safebooru.org")


@pytest.fixture
def moebooru_source():
    return make_source("Konachan", BooruAPIType.moebooru, "https://konachan.com")


@pytest.fixture
def e621_source():
    return make_source("e621", BooruAPIType.e621, "https://e621.net")
