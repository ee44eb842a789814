"""Root conftest for ticketgen and API tests.

Provides:
- FakeTextGenerator (scripted stand-in for the Claude CLI)
- FakeDurableStore (in-memory stand-in for Redis, with failure switches)
- Settings isolated from the host environment
- Sample Figma frames and requests
- ASGI client wired to a service built from fakes
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Union

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ticketgen.cache import TicketCache
from ticketgen.config import Settings, load_settings
from ticketgen.errors import DependencyUnavailable
from ticketgen.integrations.text_generation import TextGeneration
from ticketgen.service import TicketGenerationService


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


Reply = Union[str, Exception, Callable[[str], str]]


class FakeTextGenerator:
    """Returns scripted replies in order; the last one repeats.

    A reply may be a string, an exception instance (raised), or a callable
    taking the prompt. ``delay`` makes each call sleep first.
    """

    def __init__(self, replies: Optional[List[Reply]] = None, available: bool = True, delay: float = 0.0):
        self.replies: List[Reply] = list(replies or ["generated ticket"])
        self.available = available
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def generate(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        system_prompt: str = "",
        image_path: Optional[str] = None,
        caller: str = "ticketgen",
    ) -> TextGeneration:
        self.calls.append({
            "prompt": prompt,
            "caller": caller,
            "image_path": image_path,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        reply = self.replies[index]
        if isinstance(reply, Exception):
            raise reply
        text = reply(prompt) if callable(reply) else reply
        return TextGeneration(text=text, duration_ms=1)

    def callers(self) -> List[str]:
        return [c["caller"] for c in self.calls]


class FakeDurableStore:
    def __init__(self, fail_get: bool = False, fail_set: bool = False, error: Optional[Exception] = None):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.error = error if error is not None else DependencyUnavailable("durable store down")
        self.closed = False

    async def get(self, key: str) -> Optional[str]:
        if self.fail_get:
            raise self.error
        return self.data.get(key)

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        if self.fail_set:
            raise self.error
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def guided_reply(**sections: Any) -> str:
    """JSON the guided tier expects, with sensible component sections."""
    payload = {
        "summary": "Build the primary Button.",
        "description": "A primary call-to-action button.",
        "requirements": ["Support hover and focus states", "Use design tokens"],
        "acceptance_criteria": ["Matches Figma", "Keyboard accessible"],
        "implementation_notes": ["Reuse the base Button primitive"],
    }
    payload.update(sections)
    return json.dumps(payload)


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


def _solid(r: float, g: float, b: float) -> Dict[str, Any]:
    return {"type": "SOLID", "color": {"r": r, "g": g, "b": b, "a": 1.0}}


@pytest.fixture
def button_frame() -> Dict[str, Any]:
    """A small, fully described Figma button frame."""
    return {
        "id": "1:2",
        "name": "Primary Button",
        "type": "FRAME",
        "layoutMode": "HORIZONTAL",
        "itemSpacing": 8,
        "paddingLeft": 16,
        "paddingRight": 16,
        "cornerRadius": 8,
        "fills": [_solid(0.4, 0.494, 0.918)],
        "absoluteBoundingBox": {"x": 0, "y": 0, "width": 120, "height": 48},
        "reactions": [
            {"trigger": {"type": "ON_CLICK"}, "action": {"type": "NODE", "destinationId": "9:9"}},
        ],
        "children": [
            {
                "id": "1:3",
                "name": "Label",
                "type": "TEXT",
                "characters": "Sign up",
                "style": {"fontFamily": "Inter", "fontSize": 16, "fontWeight": 600},
                "fills": [_solid(1, 1, 1)],
            },
            {
                "id": "1:4",
                "name": "Caption",
                "type": "TEXT",
                "characters": "No credit card required",
                "style": {"fontFamily": "Inter", "fontSize": 12, "fontWeight": 400},
                "fills": [_solid(0.2, 0.2, 0.2)],
            },
        ],
    }


@pytest.fixture
def button_payload(button_frame) -> Dict[str, Any]:
    return {
        "componentName": "Button",
        "platform": "jira",
        "documentType": "component",
        "techStack": "React",
        "frameData": [button_frame],
    }


# ---------------------------------------------------------------------------
# Settings / service
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings from defaults only; the host environment is ignored."""
    return load_settings(environ={}, overrides={"log_dir": str(tmp_path / "logs")})


@pytest.fixture
def fake_generator() -> FakeTextGenerator:
    return FakeTextGenerator([guided_reply()])


@pytest.fixture
def make_service(settings):
    """Factory: build a service around fakes; keyword args override collaborators."""

    def _make(generator=None, cache=None, settings_overrides=None, **kwargs) -> TicketGenerationService:
        cfg = settings
        if settings_overrides:
            cfg = load_settings(environ={}, overrides={"log_dir": settings.log_dir, **settings_overrides})
        return TicketGenerationService(
            cfg,
            generator=generator,
            cache=cache if cache is not None else TicketCache(capacity=cfg.memory_cache_capacity),
            **kwargs,
        )

    return _make


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(make_service, fake_generator) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client; the app's service is built from fakes.

    ASGITransport does not run the lifespan, so the service is placed on
    ``app.state`` directly.
    """
    from app.main import create_app

    app = create_app()
    app.state.ticket_service = make_service(generator=fake_generator)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
