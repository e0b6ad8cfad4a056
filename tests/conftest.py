import os
from types import SimpleNamespace

import pytest

from translatebot.components.commands import CommandHandler
from translatebot.core.monitoring import Metrics
from translatebot.core.pipeline import MessagePipeline
from translatebot.services.translation import CachedTranslator, Detection
from translatebot.services.twitch_auth import TokenExchange, ValidatedToken
from translatebot.shared.cache import TranslationCache
from translatebot.shared.models.message import MessageMeta
from translatebot.shared.rate_limiter import RateLimiter
from translatebot.shared.repositories import ConfigStore, IgnoreList, MemoryRepository

# Ensure required environment variables for TranslateBotSettings
os.environ.setdefault("TWITCH_CLIENT_ID", "test-client")
os.environ.setdefault("TWITCH_CLIENT_SECRET", "test-secret")
os.environ.setdefault("TWITCH_ACCESS_TOKEN", "test-access")
os.environ.setdefault("TWITCH_REFRESH_TOKEN", "test-refresh")
os.environ.setdefault("TWITCH_CHANNELS", "testchannel")


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def say(self, channel: str, text: str) -> None:
        self.sent.append((channel, text))


class FakeBackend:
    """Translator backend returning canned results and counting calls."""

    def __init__(self, result: str = "hello friends", error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str | None, str]] = []

    async def translate(self, text, source_lang, target_lang):
        self.calls.append((text, source_lang, target_lang))
        if self.error is not None:
            raise self.error
        return self.result


class FakeDetector:
    def __init__(self, lang: str = "fr", prob: float = 0.99) -> None:
        self.lang = lang
        self.prob = prob
        self.calls: list[str] = []

    def detect(self, text):
        self.calls.append(text)
        if self.lang is None:
            return []
        return [Detection(lang=self.lang, prob=self.prob)]


class FakeEndpoint:
    """Token endpoint double: scripted refresh outcomes, configurable validation."""

    def __init__(self, outcomes=None, valid_tokens=None, expires_in: int = 14400) -> None:
        self.outcomes = list(outcomes or [])
        self.valid_tokens = set(valid_tokens or [])
        self.expires_in = expires_in
        self.refresh_calls: list[str] = []
        self.validate_calls: list[str] = []

    async def refresh(self, refresh_token):
        self.refresh_calls.append(refresh_token)
        outcome = self.outcomes.pop(0) if self.outcomes else RuntimeError("no scripted outcome")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def validate(self, access_token):
        self.validate_calls.append(access_token)
        if access_token not in self.valid_tokens:
            return None
        return ValidatedToken(
            user_id="999", login="translatorbot", expires_in=self.expires_in, scopes=[]
        )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_exchange():
    def factory(access="new-access", refresh="new-refresh", expires_in=14400):
        return TokenExchange(access_token=access, refresh_token=refresh, expires_in=expires_in)

    return factory


@pytest.fixture
def fake_endpoint_cls():
    return FakeEndpoint


@pytest.fixture
def meta():
    def factory(username="viewer", moderator=False, broadcaster=False):
        return MessageMeta(
            username=username, is_moderator=moderator, is_broadcaster=broadcaster
        )

    return factory


@pytest.fixture
def bot_env(clock, transport):
    """A fully wired pipeline over in-memory stores and fake services."""

    repository = MemoryRepository()
    config_store = ConfigStore(repository)
    ignore_list = IgnoreList(repository, initial=["nightbot"])
    ignore_list.init()

    cache = TranslationCache(capacity=100, ttl=3600, clock=clock)
    backend = FakeBackend()
    translator = CachedTranslator(backend, cache, timeout=1.0)
    detector = FakeDetector()
    rate_limiter = RateLimiter(global_limit=20, channel_limit=10, clock=clock)
    metrics = Metrics()
    credentials = SimpleNamespace(refresh_calls=0, error=None)

    async def refresh():
        credentials.refresh_calls += 1
        if credentials.error is not None:
            raise credentials.error
        return "refreshed"

    credentials.refresh = refresh

    commands = CommandHandler(
        transport=transport,
        config_store=config_store,
        ignore_list=ignore_list,
        translator=translator,
        credentials=credentials,
        metrics=metrics,
        bot_owner="owner",
    )
    pipeline = MessagePipeline(
        transport=transport,
        config_store=config_store,
        ignore_list=ignore_list,
        rate_limiter=rate_limiter,
        translator=translator,
        detector=detector,
        commands=commands,
        metrics=metrics,
    )
    return SimpleNamespace(
        repository=repository,
        config_store=config_store,
        ignore_list=ignore_list,
        cache=cache,
        backend=backend,
        detector=detector,
        rate_limiter=rate_limiter,
        metrics=metrics,
        credentials=credentials,
        commands=commands,
        pipeline=pipeline,
        transport=transport,
    )
