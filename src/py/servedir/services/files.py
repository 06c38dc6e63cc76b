import asyncio
import time
from pathlib import Path

from ..config import INDEX_FILE, SERVER_NAME, ServeConfig
from ..decorators import on
from ..errors import (
	Forbidden,
	InvalidTarget,
	InternalFault,
	NotFound,
	ServeError,
	Unreadable,
)
from ..features.cors import CORS_METHODS, setCORSHeaders
from ..files import inspector
from ..files.inspector import Directory, RegularFile, inspect
from ..files.listing import listEntries, renderListing
from ..files.resolver import Resolution, isExposed, resolvePath
from ..files.responder import httpDate, respondFile
from ..http.model import HTTPRequest, HTTPResponse
from ..model import Service
from ..utils.logging import LogLevel, event, exception, warning


class FileService(Service):
	"""Serves the files of a local directory, read-only. Each request is
	resolved against the root, inspected and then answered with the file,
	the index file, a listing or an error. The configuration is fixed at
	creation."""

	def __init__(self, config: ServeConfig | str | Path | None = None):
		self.config: ServeConfig = (
			config if isinstance(config, ServeConfig) else ServeConfig.Create(config)
		)
		super().__init__()

	# =========================================================================
	# HANDLERS
	# =========================================================================

	@on(GET_HEAD="/{path:any}")
	async def read(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		# Stat, scandir and open may block, so they run in the executor
		loop = asyncio.get_running_loop()
		return await loop.run_in_executor(None, self.dispatch, request)

	@on(OPTIONS="/{path:any}")
	def options(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		return self.finish(
			request, request.empty(204, {"Allow": ", ".join(CORS_METHODS)})
		)

	@on(ANY="/{path:any}")
	def unsupported(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		return self.finish(request, request.notAllowed(CORS_METHODS))

	# =========================================================================
	# DISPATCH
	# =========================================================================

	def dispatch(self, request: HTTPRequest) -> HTTPResponse:
		"""Answers a `GET` or `HEAD` request. This never raises: any failure
		is turned into an error response."""
		local: Path | None = None
		try:
			resolution = resolvePath(
				self.config.root,
				request.path,
				allowDotfiles=self.config.allowDotfiles,
				followSymlinks=self.config.followSymlinks,
			)
			local = resolution.path
			response = self.serve(request, resolution)
		except ServeError as e:
			response = self.reject(request, e, local)
		except Exception as e:
			exception(e, f"Could not serve {request.method} {request.path}")
			response = self.reject(request, InternalFault(str(e)), local)
		return self.finish(request, response, local)

	def serve(self, request: HTTPRequest, resolution: Resolution) -> HTTPResponse:
		resource = inspect(resolution.path)
		match resource:
			case RegularFile():
				return respondFile(
					request, resource, withBody=request.method != "HEAD"
				)
			case Directory():
				return self.serveDirectory(request, resolution)
			case inspector.Unreadable(path, reason):
				raise Unreadable(f"{reason}: {path}")
			case inspector.NotFound(path):
				raise NotFound(f"Not found: {path}")
			case _:
				raise InternalFault(f"Unsupported resource: {resource}")

	def serveDirectory(
		self, request: HTTPRequest, resolution: Resolution
	) -> HTTPResponse:
		"""Serves the index file of the directory when there's one, or its
		listing when listings are allowed."""
		if self.config.showIndex:
			index = inspect(resolution.path / INDEX_FILE)
			if isinstance(index, RegularFile) and self.isServable(index.path):
				return respondFile(request, index, withBody=request.method != "HEAD")
		if not self.config.allowListing:
			raise Forbidden(f"Directory listing is disabled: {resolution.path}")
		try:
			entries = listEntries(
				resolution.path,
				allowDotfiles=self.config.allowDotfiles,
				root=self.config.root,
				followSymlinks=self.config.followSymlinks,
			)
		except PermissionError:
			raise Unreadable(f"Directory is not readable: {resolution.path}")
		except OSError:
			raise NotFound(f"Directory vanished: {resolution.path}")
		if request.param("format") == "json":
			return request.returns(entries)
		else:
			return request.respondHTML(renderListing(entries, resolution.segments))

	def isServable(self, path: Path) -> bool:
		return isExposed(
			path,
			self.config.root,
			allowDotfiles=self.config.allowDotfiles,
			followSymlinks=self.config.followSymlinks,
		)

	# =========================================================================
	# POLICIES
	# =========================================================================

	def reject(
		self, request: HTTPRequest, error: ServeError, local: Path | None = None
	) -> HTTPResponse:
		"""Maps the error to its response. The body is the status message, so
		that local paths are never disclosed."""
		status: int = error.status or 500
		if isinstance(error, Unreadable):
			warning("Resource is not readable", Path=str(local or request.path))
			if self.config.hideUnreadable:
				status = 404
		return request.error(status, headers=error.headers)

	def finish(
		self,
		request: HTTPRequest,
		response: HTTPResponse,
		local: Path | None = None,
	) -> HTTPResponse:
		"""Applies the headers that every response carries, and logs the
		request unless quiet."""
		self.decorate(response)
		if request.method == "HEAD":
			response.strip()
		if not self.config.quiet:
			event(
				request.method,
				request.path,
				level=LogLevel.Warning if response.status >= 500 else LogLevel.Info,
				Status=response.status,
				Path=str(local) if local else None,
			)
		return response

	def decorate(self, response: HTTPResponse) -> HTTPResponse:
		response.setHeaders({"Date": httpDate(time.time()), "Server": SERVER_NAME})
		if self.config.allowCORS:
			setCORSHeaders(response)
		return response

	# =========================================================================
	# FALLBACKS
	# =========================================================================

	def onRouteNotFound(self, request: HTTPRequest) -> HTTPResponse:
		# Only targets that are not absolute paths reach this point
		if request.method == "OPTIONS" and request.path == "*":
			return self.options(request)
		return self.finish(
			request,
			self.reject(request, InvalidTarget(f"Invalid target: {request.path!r}")),
		)

	def onError(
		self, response: HTTPResponse, request: HTTPRequest | None = None
	) -> HTTPResponse:
		return self.finish(request, response) if request else self.decorate(response)


# EOF
