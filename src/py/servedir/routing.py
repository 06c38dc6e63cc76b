import re
from inspect import iscoroutine
from typing import Any, Callable, ClassVar, NamedTuple, Optional, Pattern

from .decorators import Marks
from .http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from .utils.logging import debug


async def awaited(value: Any) -> Any:
    return (await value) if iscoroutine(value) else value


# -----------------------------------------------------------------------------
#
# ROUTE
#
# -----------------------------------------------------------------------------


class RoutePattern(NamedTuple):
    """What a route parameter matches, and how its value is extracted."""

    expr: str
    extractor: Callable[[str], Any]


class Route:
    """A path template where parameters are written `{name}` or
    `{name:type}`, the type being one of `PATTERNS` (a `segment` when
    omitted). A route gets the priority of its handler."""

    RE_PARAMETER: ClassVar[Pattern[str]] = re.compile(
        r"\{(?P<name>[A-Za-z_]\w*)(:(?P<type>[A-Za-z]+))?\}"
    )

    PATTERNS: ClassVar[dict[str, RoutePattern]] = {
        "segment": RoutePattern(r"[^/]+", str),
        "int": RoutePattern(r"\-?\d+", int),
        "any": RoutePattern(r".*", str),
    }

    @classmethod
    def Compile(cls, text: str) -> tuple[Pattern[str], dict[str, RoutePattern]]:
        """Returns the regular expression matching the template, along with
        the patterns of its parameters."""
        params: dict[str, RoutePattern] = {}
        expr: list[str] = []
        offset: int = 0
        for match in cls.RE_PARAMETER.finditer(text):
            name: str = match.group("name")
            kind: str = (match.group("type") or "segment").lower()
            if kind not in cls.PATTERNS:
                raise ValueError(
                    f"Route pattern '{kind}' is not registered, pick one of: {', '.join(sorted(cls.PATTERNS))}"
                )
            elif name in params:
                raise ValueError(f"Route parameter '{name}' is repeated in: {text}")
            params[name] = cls.PATTERNS[kind]
            expr.append(re.escape(text[offset : match.start()]))
            expr.append(f"(?P<{name}>{params[name].expr})")
            offset = match.end()
        expr.append(re.escape(text[offset:]))
        return re.compile(f"^{''.join(expr)}$"), params

    def __init__(self, text: str, handler: Optional["Handler"] = None):
        self.text: str = text
        self.regexp, self.params = self.Compile(text)
        self.handler: Handler | None = handler

    @property
    def priority(self) -> int:
        return self.handler.priority if self.handler else 0

    def match(self, path: str) -> dict[str, Any] | None:
        matched = self.regexp.match(path)
        if not matched:
            return None
        return {k: v.extractor(matched.group(k)) for k, v in self.params.items()}

    def __repr__(self) -> str:
        return f"(Route {self.text!r} ({' '.join(self.params)}))"


# -----------------------------------------------------------------------------
#
# HANDLER
#
# -----------------------------------------------------------------------------


class Handler:
    """Wraps a service method marked with `@on`, along with the paths it
    answers for each HTTP method and its priority."""

    @staticmethod
    def Get(value: Any) -> Optional["Handler"]:
        """Returns the handler for the value if it is marked, `None`
        otherwise."""
        methods: list[tuple[str, str]] | None = getattr(value, Marks.ON, None)
        if not methods or not callable(value):
            return None
        return Handler(value, methods, getattr(value, Marks.ON_PRIORITY, 0))

    def __init__(
        self,
        functor: Callable[..., Any],
        methods: list[tuple[str, str]],
        priority: int = 0,
    ):
        self.functor = functor
        self.methods: dict[str, list[str]] = {}
        for method, path in methods:
            self.methods.setdefault(method, []).append(path)
        self.priority = priority

    async def __call__(
        self, request: HTTPRequest, params: dict[str, Any]
    ) -> HTTPResponse:
        try:
            response: HTTPResponse = await awaited(self.functor(request, **params))
        except HTTPRequestError as error:
            response = request.error(
                error.status or 500, error.message, headers=error.headers
            )
        return response

    def __repr__(self) -> str:
        methods = " ".join(f"({k} {' '.join(v)})" for k, v in self.methods.items())
        return f"(Handler {self.priority} {methods} {self.functor})"


# -----------------------------------------------------------------------------
#
# DISPATCHER
#
# -----------------------------------------------------------------------------


class Dispatcher:
    """Matches a method and a path to the route of a registered handler.
    Routes are kept sorted by decreasing priority, the first match wins."""

    # Routes registered for this method match any method without routes
    ANY: ClassVar[str] = "ANY"

    def __init__(self) -> None:
        self.routes: dict[str, list[Route]] = {}

    def register(self, handler: Handler, prefix: str | None = None) -> "Dispatcher":
        for method, paths in handler.methods.items():
            routes = self.routes.setdefault(method, [])
            for path in paths:
                path = f"{prefix}{path}" if prefix else path
                path = path if path.startswith("/") else f"/{path}"
                debug("Registered route", Method=method, Path=path)
                routes.append(Route(path, handler))
            # The sort is stable, so equal priorities keep their order
            routes.sort(key=lambda _: -_.priority)
        return self

    def match(
        self, method: str, path: str
    ) -> tuple[Route | None, dict[str, Any] | None]:
        for route in self.routes.get(method) or self.routes.get(self.ANY) or ():
            params = route.match(path)
            if params is not None:
                return route, params
        return None, None


# EOF
