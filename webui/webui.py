import logging
import os
from urllib.parse import urlencode

import uvicorn
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.routing import Route

from middleware.htmx import HtmxLocation, HtmxMiddleware, InvalidArgument, get_htmx
from .error_routes import bad_request, not_found
from .template import htmx_template, templates

logger = logging.getLogger(__name__)


def find_contacts(request: Request, query: str | None):
    contacts: list[str] = request.app.state.contacts
    if not query:
        return contacts
    return [c for c in contacts if query.lower() in c.lower()]


@htmx_template("index.jinja2")
async def index_route(request: Request):
    htmx = get_htmx(request)
    ctx = {
        "boosted": htmx.boosted,
        "contact_count": len(request.app.state.contacts),
    }
    return ctx, {'Cache-Control': 'public, max-age=10'}


@htmx_template("contacts.jinja2")
async def contacts_route(request: Request):
    htmx = get_htmx(request)
    # hx-prompt on the search button sends the query in a header
    query = htmx.prompt or request.query_params.get("q")
    contacts = find_contacts(request, query)
    if htmx.target_id == "contact-rows":
        return templates.TemplateResponse(request, "htmx/contact_rows.jinja2", {"contacts": contacts})
    if htmx.is_htmx and query:
        htmx.replace_url(f"/contacts?{urlencode({'q': query})}")
    return {"contacts": contacts, "query": query or ""}


async def new_contact_route(request: Request):
    htmx = get_htmx(request)
    form = await request.form()
    name = form.get("name")
    if not isinstance(name, str) or not name.strip():
        raise HTTPException(status_code=400, detail="Invalid contact name")
    name = name.strip()
    request.app.state.contacts.append(name)
    logger.info("contact added: %s", name)
    if not htmx.is_htmx:
        return RedirectResponse(url="/contacts", status_code=303)
    htmx.retarget("#contact-rows")
    htmx.reswap("beforeend", "scroll:bottom")
    htmx.push_url("/contacts")
    htmx.trigger({"contactAdded": {"name": name}}, "after-settle")
    return templates.TemplateResponse(request, "htmx/contact_rows.jinja2", {"contacts": [name]})


async def clear_contacts_route(request: Request):
    request.app.state.contacts.clear()
    get_htmx(request).refresh()
    return Response()


async def go_route(request: Request):
    request.state.redirect(request.query_params.get("to", "/"))
    return Response()


async def location_route(request: Request):
    htmx = get_htmx(request)
    if request.query_params:
        # raises InvalidArgument without a path, handled as 400
        htmx.location(dict(request.query_params))
    else:
        htmx.location(HtmxLocation(path="/contacts", target="#main", swap="innerHTML"))
    return Response()


routes = [
    Route("/", index_route),
    Route("/contacts", contacts_route),
    Route("/contacts/new", new_contact_route, methods=["POST"]),
    Route("/contacts/clear", clear_contacts_route, methods=["POST"]),
    Route("/go", go_route),
    Route("/location", location_route),
]

exc_handlers = {
    400: bad_request,
    404: not_found,
    InvalidArgument: bad_request,
}

debug = True if os.environ.get("DEBUG") else False

# noinspection PyTypeChecker
app = Starlette(
    debug=debug,
    routes=routes,
    exception_handlers=exc_handlers,
    middleware=[
        Middleware(HtmxMiddleware, redirect_status_code=int(os.environ.get("REDIRECT_STATUS", 302))),
    ]
)
# noinspection PyUnresolvedReferences
app.state.contacts = ["Ada Lovelace", "Grace Hopper", "Alan Turing"]


async def run():
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", 8000))
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)
    config = uvicorn.Config("webui.webui:app", log_level="info", host=host, port=port)
    await uvicorn.Server(config).serve()
