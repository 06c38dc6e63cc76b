import asyncio

import pytest

from servedir.decorators import on
from servedir.http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from servedir.model import Application, Service, mount
from servedir.routing import Dispatcher, Handler, Route

ROUTES = {
	"post": (["post"], ["", "/post", "post/", "poster"]),
	"post/": (["post/"], ["", "/post/", "/post", "poster/"]),
	"post/{id}": (["post/a", "post/ab"], ["", "post/", "/post", "post/a/"]),
	"/{path:any}": (["/", "/a", "/a/b/c.txt"], ["", "a"]),
	"/files/{name:segment}": (["/files/a.txt"], ["/files/", "/files/a/b"]),
}


@pytest.mark.parametrize("route", ROUTES.keys())
def test_route_matching(route: str):
	ok, not_ok = ROUTES[route]
	r = Route(route)
	for path in ok:
		assert r.match(path) is not None, f"'{path}' should match '{route}'"
	for path in not_ok:
		assert r.match(path) is None, f"'{path}' should not match '{route}'"


def test_route_parameters():
	assert Route("/{path:any}").match("/a/b%20c") == {"path": "a/b%20c"}
	assert Route("/page/{n:int}").match("/page/42") == {"n": 42}
	route = Route("/a/{id}.txt")
	assert route.params == {"id": Route.PATTERNS["segment"]}
	assert route.match("/a/b.txt") == {"id": "b"}
	# Template text is literal, not a regular expression
	assert route.match("/a/bXtxt") is None
	for template in ("/{x:unknown}", "/{x}/{x}"):
		with pytest.raises(ValueError):
			Route(template)


class Example(Service):
	@on(GET="/{path:any}")
	def read(self, request: HTTPRequest, path: str) -> HTTPResponse:
		return request.respondText(f"read {path}")

	@on(priority=10, GET="/special")
	async def special(self, request: HTTPRequest) -> HTTPResponse:
		return request.respondText("special")

	@on(GET="/fail")
	def fail(self, request: HTTPRequest) -> HTTPResponse:
		raise HTTPRequestError("Teapot", status=418)

	@on(ANY="/{path:any}")
	def other(self, request: HTTPRequest, path: str) -> HTTPResponse:
		return request.notAllowed(["GET"])


def call(app: Application, method: str, path: str) -> HTTPResponse:
	async def main() -> HTTPResponse:
		await app.start()
		res = app.process(HTTPRequest.Create(method, path))
		return res if isinstance(res, HTTPResponse) else await res

	return asyncio.run(main())


def body(res: HTTPResponse) -> bytes:
	return getattr(res.body, "payload", b"")


def test_service_handlers():
	service = Example()
	handlers = service.handlers
	assert all(isinstance(_, Handler) for _ in handlers)
	assert sorted(m for _ in handlers for m in _.methods) == ["ANY", "GET", "GET", "GET"]


def test_dispatch():
	app = mount(Example())
	assert body(call(app, "GET", "/docs/a.txt")) == b"read docs/a.txt"
	# Higher priority routes win
	assert body(call(app, "GET", "/special")) == b"special"
	res = call(app, "POST", "/docs")
	assert res.status == 405
	assert res.getHeader("Allow") == "GET"


def test_handler_errors_become_responses():
	res = call(mount(Example()), "GET", "/fail")
	assert res.status == 418
	assert body(res) == b"Teapot"


def test_route_not_found():
	app = Application()
	assert call(app, "GET", "/").status == 404


def test_mount_once():
	service = Example()
	app = mount(service)
	assert service.isMounted
	assert service.app is app
	with pytest.raises(RuntimeError):
		app.mount(service)


def test_dispatcher_priorities():
	dispatcher = Dispatcher()
	for handler in Example().handlers:
		dispatcher.register(handler)
	assert dispatcher.routes["GET"][0].text == "/special"
	route, params = dispatcher.match("GET", "/special")
	assert route is not None and route.priority == 10
	assert params == {}
	route, params = dispatcher.match("PUT", "/x")
	assert route is not None and route.handler is not None
	assert params == {"path": "x"}
	assert dispatcher.match("GET", "relative") == (None, None)


def test_mount_on_one_application():
	app = Application()
	service = Example()
	assert mount(app, service) is app
	assert app.services == [service]
	assert Application([Example()]).services[0].isMounted
	with pytest.raises(RuntimeError):
		mount(app, Application())


# EOF
