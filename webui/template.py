import functools
import os
from typing import Callable, Coroutine, Any

import jinja2
from starlette.requests import Request
from starlette.responses import Response
from starlette.templating import Jinja2Templates

from middleware.htmx import get_htmx

env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(os.path.join(os.path.dirname(__file__), "templates")),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
)
templates = Jinja2Templates(env=env)

def get_env(name: str):
    return os.environ.get(name)

templates.env.filters["get_env"] = get_env # type: ignore

def htmx_template(template: str):
    """Render ``htmx/<template>`` for htmx requests and ``<template>`` for full page loads.

    The wrapped route returns a template context, a ``(context, headers)``
    tuple, or a ready made Response which is passed through untouched.
    """
    def decorator(func: Callable[[Request], Coroutine[Any, Any, tuple[dict[str, Any], dict[str, str]] | dict[str, Any] | Response]]):
        @functools.wraps(func)
        async def wrapper(request: Request):
            if get_htmx(request).is_htmx:
                t = f"htmx/{template}"
            else:
                t = template
            result = await func(request)
            if isinstance(result, Response):
                return result
            if isinstance(result, tuple):
                context, headers = result
            else:
                context, headers = result, None
            return templates.TemplateResponse(request, t, context, headers=headers)
        return wrapper
    return decorator
