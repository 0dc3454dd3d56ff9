from starlette.requests import Request

from middleware.htmx import get_htmx
from .template import templates


def error_template(request: Request, name: str):
    if get_htmx(request).is_htmx:
        return f"htmx/{name}"
    return name


async def bad_request(request: Request, exc: Exception):
    return templates.TemplateResponse(request, error_template(request, "400.jinja2"), {"exc": exc}, status_code=400)


async def not_found(request: Request, exc: Exception):
    return templates.TemplateResponse(request, error_template(request, "404.jinja2"), {"exc": exc}, status_code=404)
