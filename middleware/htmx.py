import json
import logging
from urllib.parse import quote
from dataclasses import dataclass, fields
from typing import Any, Literal, Mapping

from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Scope, Receive, Send

logger = logging.getLogger(__name__)

SwapBaseModifier = Literal[
    "outerHTML",
    "innerHTML",
    "beforebegin",
    "afterbegin",
    "beforeend",
    "afterend",
    "delete",
    "none",
]
# timing ("swap:1s", "settle:100ms") and scrolling ("scroll:top", "show:#id:bottom") modifiers
SwapModifier = SwapBaseModifier | str
TriggerTiming = Literal["after-settle", "after-swap"] | None
UrlOrFalse = str | Literal[False]


class HtmxError(Exception):
    pass


class InvalidArgument(HtmxError, ValueError):
    pass


@dataclass(frozen=True)
class HtmxRequestState:
    participating: bool = False
    boosted: bool = False
    history_restore_request: bool = False
    current_url: str | None = None
    prompt: str | None = None
    target_id: str | None = None
    trigger_id: str | None = None
    trigger_name: str | None = None


@dataclass(frozen=True)
class HtmxLocation:
    """Structured value for the HX-Location response header.

    Only ``path`` is required; the other fields mirror the context accepted by
    ``htmx.ajax()`` and are left out of the header when unset.
    """
    path: str
    source: str | None = None
    event: str | None = None
    handler: str | None = None
    target: str | None = None
    swap: str | None = None
    values: Any = None
    headers: Any = None

    def as_dict(self) -> dict[str, Any]:
        res: dict[str, Any] = {}
        for field in fields(self):
            value = getattr(self, field.name)
            if value is not None:
                res[field.name] = value
        return res


def parse_htmx_headers(headers: Mapping[str, str]) -> HtmxRequestState:
    # starlette Headers lower-cases lookups, plain dicts must use these exact names
    if headers.get("HX-Request") != "true":
        return HtmxRequestState()
    return HtmxRequestState(
        participating=True,
        boosted=headers.get("HX-Boosted") == "true",
        history_restore_request=headers.get("HX-History-Restore-Request") == "true",
        current_url=headers.get("HX-Current-URL"),
        prompt=headers.get("HX-Prompt"),
        target_id=headers.get("HX-Target"),
        trigger_id=headers.get("HX-Trigger"),
        trigger_name=headers.get("HX-Trigger-Name"),
    )


def dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def quote_url(url: str) -> str:
    # header values must stay latin-1
    return quote(url, safe=":/%#?=@[]!$&'()*+,;")


class HtmxDetails:
    """Per-request htmx state plus the response directives set by handlers.

    Directives are kept here until HtmxMiddleware sees the response start
    message, then copied onto it. Setting the same directive twice keeps the
    last value.
    """

    def __init__(self, state: HtmxRequestState, *, redirect_status_code: int = 302) -> None:
        self._state = state
        self.redirect_status_code = redirect_status_code
        self._headers = MutableHeaders()
        self._status_code: int | None = None
        self._started = False

    @property
    def is_htmx(self) -> bool:
        return self._state.participating

    @property
    def state(self) -> HtmxRequestState:
        return self._state

    @property
    def boosted(self) -> bool:
        return self._state.boosted

    @property
    def history_restore_request(self) -> bool:
        return self._state.history_restore_request

    @property
    def current_url(self) -> str | None:
        return self._state.current_url

    @property
    def prompt(self) -> str | None:
        return self._state.prompt

    @property
    def target_id(self) -> str | None:
        return self._state.target_id

    @property
    def trigger_id(self) -> str | None:
        return self._state.trigger_id

    @property
    def trigger_name(self) -> str | None:
        return self._state.trigger_name

    @property
    def headers(self) -> Headers:
        return Headers(raw=list(self._headers.raw))

    @property
    def status_code(self) -> int | None:
        return self._status_code

    def _set_header(self, name: str, value: str) -> None:
        if self._started:
            logger.warning("htmx header %s set after the response has started, ignored by the client", name)
        self._headers[name] = value

    def _set_status(self, status_code: int) -> None:
        if self._started:
            logger.warning("htmx status %d set after the response has started, ignored by the client", status_code)
        self._status_code = status_code

    def location(self, target: str | HtmxLocation | Mapping[str, Any]) -> None:
        """Client side navigation without a full page reload (HX-Location).

        Acts like following a boosted link: htmx issues an ajax request to
        ``path`` and pushes it into history. A bare path is sent as is; any
        extra field (target, swap, ...) switches the header to JSON.
        """
        if not self.is_htmx:
            return
        if isinstance(target, HtmxLocation):
            target = target.as_dict()
        if isinstance(target, str):
            value = quote_url(target)
        else:
            if "path" not in target:
                raise InvalidArgument("path is required")
            if len(target) == 1:
                value = quote_url(str(target["path"]))
            else:
                value = dump_json(dict(target))
        self._set_header("HX-Location", value)

    def push_url(self, url: UrlOrFalse) -> None:
        """Push ``url`` into the browser history, or ``False`` to prevent the history update."""
        if not self.is_htmx:
            return
        self._set_header("HX-Push-Url", "false" if url is False else quote_url(url))

    def replace_url(self, url: UrlOrFalse) -> None:
        """Replace the current history entry with ``url``, or ``False`` to leave it alone."""
        if not self.is_htmx:
            return
        self._set_header("HX-Replace-Url", "false" if url is False else quote_url(url))

    def redirect(self, url: str) -> None:
        # htmx follows HX-Redirect itself, everything else gets a plain http redirect
        if self.is_htmx:
            self._set_header("HX-Redirect", quote_url(url))
            self._set_status(204)
        else:
            self._set_header("Location", quote_url(url))
            self._set_status(self.redirect_status_code)

    def refresh(self) -> None:
        """Make the client do a full page refresh."""
        if not self.is_htmx:
            return
        self._set_header("HX-Refresh", "true")
        self._set_status(204)

    def reswap(self, *modifiers: SwapModifier) -> None:
        """Override how the response is swapped in, see hx-swap for the modifier syntax."""
        if not self.is_htmx or not modifiers:
            return
        self._set_header("HX-Reswap", " ".join(dict.fromkeys(modifiers)))

    def retarget(self, selector: str) -> None:
        if not self.is_htmx:
            return
        self._set_header("HX-Retarget", selector)

    def trigger(self, events: Mapping[str, Any] | str, timing: TriggerTiming = None) -> None:
        """Trigger client side events once the response is received.

        ``events`` maps event names to their detail payload. ``timing`` picks
        the moment the events fire: right away (default), after the settle
        step or after the swap step.
        """
        if not self.is_htmx:
            return
        header = "HX-Trigger"
        mode = (timing or "").lower().replace("-", "")
        if mode == "aftersettle":
            header = "HX-Trigger-After-Settle"
        elif mode == "afterswap":
            header = "HX-Trigger-After-Swap"
        self._set_header(header, events if isinstance(events, str) else dump_json(dict(events)))

    def apply(self, message: Message) -> None:
        self._started = True
        # error responses keep their own status
        if self._status_code is not None and message["status"] < 400:
            message["status"] = self._status_code
        if not self._headers:
            return
        headers = MutableHeaders(scope=message)
        for name, value in self._headers.items():
            headers[name] = value


class HtmxMiddleware:
    def __init__(self, app: ASGIApp, *, vary: bool = True, redirect_status_code: int = 302) -> None:
        if not 300 <= redirect_status_code < 400:
            raise ValueError(f"redirect_status_code must be a 3xx status, got {redirect_status_code}")
        self.app = app
        self.vary = vary
        self.redirect_status_code = redirect_status_code

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ["http", "websocket"]:
            return await self.app(scope, receive, send)

        htmx = HtmxDetails(parse_htmx_headers(Headers(scope=scope)), redirect_status_code=self.redirect_status_code)
        scope["htmx"] = htmx
        state = scope.setdefault("state", {})
        state["is_htmx"] = htmx.is_htmx
        state["htmx"] = htmx
        state["redirect"] = htmx.redirect
        if htmx.is_htmx:
            logger.debug("htmx request %s %s: %s", scope.get("method", "WS"), scope["path"], htmx.state)

        empty_body = False

        async def send_htmx(message: Message) -> None:
            nonlocal empty_body
            if message["type"] == "http.response.start":
                htmx.apply(message)
                headers = MutableHeaders(scope=message)
                if self.vary:
                    headers.add_vary_header("HX-Request")
                if message["status"] == 204:
                    # 204 must not carry a body
                    empty_body = True
                    del headers["content-length"]
                    del headers["content-type"]
            elif message["type"] == "http.response.body" and empty_body:
                if message.get("more_body", False):
                    return
                message = {"type": "http.response.body", "body": b"", "more_body": False}
            await send(message)

        await self.app(scope, receive, send_htmx)


def get_htmx(conn: HTTPConnection) -> HtmxDetails:
    try:
        return conn.scope["htmx"]
    except KeyError:
        raise RuntimeError("get_htmx used without HtmxMiddleware") from None
