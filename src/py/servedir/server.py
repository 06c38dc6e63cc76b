import asyncio
import ssl
from ssl import SSLContext
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, Coroutine, NamedTuple

from .config import HOST, PORT
from .http.model import (
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .http.status import HTTP_NO_BODY, HTTP_STATUS
from .model import Application, Service, mount
from .utils.limits import LimitType, unlimit
from .utils.logging import LogLevel, debug, event, exception, info, warning


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = "0.0.0.0"  # nosec: B104
	port: int = 4507
	backlog: int = 1_024
	# This is the polling timeout for checking the server state
	polling: float = 1.0
	readsize: int = 4_096
	# Idle connections are closed after this many seconds
	keepalive: float = 15.0
	ssl: SSLContext | None = None
	# Called with the host and the port once the server is listening
	onStart: Callable[[str, int], None] | None = None
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


OPTIONS: ServerOptions = ServerOptions()


def tlsContext(cert: str, key: str) -> SSLContext:
	"""Creates the server TLS context, raising `OSError` or `ssl.SSLError`
	when the certificate or the key can't be loaded."""
	context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
	context.load_cert_chain(certfile=cert, keyfile=key)
	return context


class StreamBodyWriter(HTTPBodyWriter):
	"""Writes to an asyncio stream, waiting for the client to drain so that
	a slow client only suspends its own connection."""

	__slots__ = ["writer"]

	def __init__(self, writer: asyncio.StreamWriter) -> None:
		super().__init__()
		self.writer: asyncio.StreamWriter = writer

	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool:
		if chunk:
			self.writer.write(chunk)
			await self.writer.drain()
		return True


class AIOStreamServer:
	"""AsyncIO backend using streams, which support TLS."""

	@classmethod
	async def OnRequest(
		cls,
		app: Application,
		reader: asyncio.StreamReader,
		writer: asyncio.StreamWriter,
		*,
		options: ServerOptions,
	) -> None:
		"""Asynchronous worker, processing the requests of one connection in
		the context of an application. Requests are processed sequentially
		until the connection is not kept alive anymore."""
		peername = writer.get_extra_info("peername")
		peer: str | None = f"{peername[0]}:{peername[1]}" if peername else None
		parser: HTTPParser = HTTPParser(peer)
		body: StreamBodyWriter = StreamBodyWriter(writer)
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		keep_alive: bool = True
		req_count: int = 0
		try:
			while keep_alive and not body.shouldClose:
				try:
					chunk: bytes = await asyncio.wait_for(
						reader.read(options.readsize), timeout=options.keepalive
					)
				except TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				if not chunk:
					# A no-data means a close
					status = HTTPProcessingStatus.NoData
					break
				# With pipelining, the chunk may hold more than one request
				for atom in parser.feed(chunk):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Peer=peer)
						await cls.WriteResponse(
							cls.ErrorResponse(app, 400), body, keepAlive=False
						)
						status = atom
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						keep_alive = atom.keepAlive
						res = await cls.SendResponse(atom, app, body, keepAlive=keep_alive)
						if res.shouldClose or body.shouldClose:
							keep_alive = False
						if not keep_alive:
							break
			debug(
				"Connection done",
				Peer=peer,
				Status=status.name,
				Requests=req_count,
			)
		except (ConnectionResetError, BrokenPipeError) as e:
			# The client went away, possibly in the middle of a response
			warning("Response aborted", Peer=peer, Reason=str(e))
		except asyncio.CancelledError:
			raise
		except Exception as e:
			exception(e, f"Connection failed with {peer}")
		finally:
			await cls.Close(writer)

	@staticmethod
	async def Close(writer: asyncio.StreamWriter, timeout: float = 1.0) -> None:
		"""Closes the connection, flushing what's left to write unless the
		client doesn't read it within `timeout`."""
		writer.close()
		try:
			await asyncio.wait_for(writer.wait_closed(), timeout=timeout)
		except TimeoutError:
			writer.transport.abort()
		except (OSError, ssl.SSLError) as e:
			debug("Connection closed with error", Reason=str(e))

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		app: Application,
		writer: StreamBodyWriter,
		*,
		keepAlive: bool = True,
	) -> HTTPResponse:
		"""Processes the request within the application and sends the
		response using the given writer. When the application fails, an
		error response is sent and the connection is closed."""
		res: HTTPResponse
		try:
			r: HTTPResponse | Coroutine[Any, Any, HTTPResponse] = app.process(request)
			res = r if isinstance(r, HTTPResponse) else await r
		except Exception as e:
			exception(e, f"Could not process {request.method} {request.path}")
			res = AIOStreamServer.ErrorResponse(app, 500, request)
			keepAlive = False
		return await AIOStreamServer.WriteResponse(
			res, writer, keepAlive=keepAlive, withBody=request.method != "HEAD"
		)

	@staticmethod
	async def WriteResponse(
		res: HTTPResponse,
		writer: StreamBodyWriter,
		*,
		keepAlive: bool = True,
		withBody: bool = True,
	) -> HTTPResponse:
		try:
			if not keepAlive:
				res.setHeader("Connection", "close")
				res.shouldClose = True
			await writer.write(res.head())
			if withBody and res.status not in HTTP_NO_BODY:
				await writer.write(res.body)
		finally:
			# Releases any file handle the body still holds
			res.close()
		return res

	@staticmethod
	def ErrorResponse(
		app: Application, status: int, request: HTTPRequest | None = None
	) -> HTTPResponse:
		"""Creates the error response through the application, so that its
		services can amend it. A plain one is used if that fails too."""
		try:
			return app.onError(status, request)
		except Exception as e:
			exception(e, f"Could not create the {status} response")
			return HTTPResponse.Create(
				content=HTTP_STATUS.get(status, "Server Error"),
				contentType="text/plain; charset=utf-8",
				status=status,
			)

	@classmethod
	async def Serve(
		cls,
		app: Application,
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine. Binding errors are raised, there's no
		retry."""
		await app.start()
		tasks: set[asyncio.Task[None]] = set()
		loop = asyncio.get_running_loop()

		async def onConnection(
			reader: asyncio.StreamReader, writer: asyncio.StreamWriter
		) -> None:
			task = asyncio.current_task()
			if task:
				tasks.add(task)
				task.add_done_callback(tasks.discard)
			await cls.OnRequest(app, reader, writer, options=options)

		server = await asyncio.start_server(
			onConnection,
			options.host,
			options.port,
			backlog=options.backlog,
			ssl=options.ssl,
			reuse_address=True,
		)
		# The port may have been picked by the system when given as 0
		port: int = (
			server.sockets[0].getsockname()[1] if server.sockets else options.port
		)

		# Manage server state
		state = ServerState()
		# Signal handlers can only be installed from the main thread
		if (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		):
			loop.add_signal_handler(SIGINT, lambda: state.stop())
			loop.add_signal_handler(SIGTERM, lambda: state.stop())
		loop.set_exception_handler(state.onException)

		info(
			"Server listening",
			icon="🚀",
			Host=options.host,
			Port=port,
			TLS=options.ssl is not None,
		)
		if options.onStart:
			options.onStart(options.host, port)

		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				await asyncio.sleep(options.polling or 1.0)
		finally:
			server.close()
			for task in list(tasks):
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)
			await server.wait_closed()
			await app.stop()


def run(
	*components: Application | Service,
	host: str = HOST,
	port: int = PORT,
	backlog: int = OPTIONS.backlog,
	polling: float = OPTIONS.polling,
	keepalive: float = OPTIONS.keepalive,
	ssl: SSLContext | None = None,
	onStart: Callable[[str, int], None] | None = None,
	condition: Callable[[], bool] | None = None,
	stopSignals: bool = OPTIONS.stopSignals,
) -> None:
	"""High level function to run the server. Raises `OSError` when the
	server can't listen on the given host and port."""
	unlimit(LimitType.Files)
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		polling=polling,
		keepalive=keepalive,
		ssl=ssl,
		onStart=onStart,
		condition=condition,
		stopSignals=stopSignals,
	)
	app = mount(*components)
	try:
		asyncio.run(AIOStreamServer.Serve(app, options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK", level=LogLevel.Debug)


# EOF
