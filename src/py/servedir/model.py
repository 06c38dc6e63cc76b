from typing import Any, Coroutine, Iterator, Optional

from .decorators import Marks
from .routing import Handler, Dispatcher
from .http.model import HTTPRequest, HTTPResponse
from .utils.logging import exception

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class Service:
    """Groups the handlers defined with `@on` on a subclass. A service is
    mounted on exactly one application, which routes requests to it."""

    def __init__(self, name: Optional[str] = None, *, prefix: str = "") -> None:
        self.name: str = name or self.__class__.__name__
        self.app: Optional[Application] = None
        self.prefix: str = prefix
        self._handlers: Optional[list[Handler]] = None

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    @property
    def isMounted(self) -> bool:
        return self.app is not None

    @property
    def handlers(self) -> list[Handler]:
        if self._handlers is None:
            self._handlers = list(self.iterHandlers())
        return self._handlers

    def iterHandlers(self) -> Iterator[Handler]:
        # Marks are looked up on the class, so that properties aren't evaluated
        for name in dir(type(self)):
            if hasattr(getattr(type(self), name, None), Marks.ON):
                handler = Handler.Get(getattr(self, name))
                if handler:
                    yield handler

    def onRouteNotFound(self, request: HTTPRequest) -> HTTPResponse | None:
        """Can be overridden to answer requests that match no route."""
        return None

    def onError(
        self, response: HTTPResponse, request: HTTPRequest | None = None
    ) -> HTTPResponse:
        """Can be overridden to amend the error responses the server sends
        on its own, when a request is malformed or its processing failed."""
        return response

    def __repr__(self) -> str:
        return f"(Service {self.name}{' :mounted' if self.isMounted else ''})"


# -----------------------------------------------------------------------------
#
# APPLICATION
#
# -----------------------------------------------------------------------------


class Application:
    def __init__(self, services: list[Service] | None = None) -> None:
        self.dispatcher: Dispatcher = Dispatcher()
        self.services: list[Service] = []
        for service in services or ():
            self.mount(service)

    async def start(self) -> "Application":
        for srv in self.services:
            try:
                await srv.start()
            except Exception as e:
                raise exception(e, f"Could not start service {srv}") from e
        return self

    async def stop(self) -> "Application":
        for srv in self.services:
            try:
                await srv.stop()
            except Exception as e:
                raise exception(e, f"Could not stop service {srv}") from e
        return self

    def process(
        self, request: HTTPRequest
    ) -> HTTPResponse | Coroutine[Any, Any, HTTPResponse]:
        route, params = self.dispatcher.match(request.method, request.path)
        if route and route.handler:
            return route.handler(request, params or {})
        else:
            return self.onRouteNotFound(request)

    def onRouteNotFound(self, request: HTTPRequest) -> HTTPResponse:
        for srv in self.services:
            res = srv.onRouteNotFound(request)
            if res is not None:
                return res
        return request.notFound()

    def onError(self, status: int, request: HTTPRequest | None = None) -> HTTPResponse:
        """Creates the response sent when the request is malformed (no
        `request` then) or when processing it failed."""
        res = (request or HTTPRequest.Create()).error(status)
        for srv in self.services:
            res = srv.onError(res, request)
        return res

    def mount(self, service: Service, prefix: Optional[str] = None) -> Service:
        if service.isMounted:
            raise RuntimeError(
                f"Cannot mount service, it is already mounted: {service}"
            )
        for handler in service.handlers:
            self.dispatcher.register(handler, prefix or service.prefix)
        self.services.append(service)
        service.app = self
        return service


def mount(*components: Application | Service) -> Application:
    """Mounts the services on the first given application, or on a new one."""
    apps = [_ for _ in components if isinstance(_, Application)]
    app: Application = apps[0] if apps else Application()
    for item in components:
        if isinstance(item, Service):
            app.mount(item)
        elif item is not app:
            raise RuntimeError(f"Only one application can be mounted: {item}")
    return app


# EOF
