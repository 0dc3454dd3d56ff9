from typing import Callable

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from middleware.htmx import HtmxMiddleware


@pytest.fixture
def make_client():
    """Build a TestClient around one route that runs ``action`` before answering "ok"."""

    def factory(action: Callable[[Request], None] | None = None, **options) -> TestClient:
        async def endpoint(request: Request):
            if action is not None:
                action(request)
            return PlainTextResponse("ok")

        app = Starlette(
            routes=[Route("/", endpoint, methods=["GET", "POST"])],
            middleware=[Middleware(HtmxMiddleware, **options)],
        )
        return TestClient(app)

    return factory
