import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import (
	Any,
	BinaryIO,
	NamedTuple,
	TypeAlias,
)

from ..utils.io import DEFAULT_ENCODING
from ..utils.logging import warning
from .api import ResponseFactory
from .status import HTTP_STATUS


# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def headername(name: str, *, headers: dict[str, str] = {}) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	# NOTE: The default `headers` is a shared cache of normalized names
	if name in headers:
		return headers[name]
	key: str = name.lower()
	if key in headers:
		return headers[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in name.split("-"))
		headers[key] = normalized
		return normalized


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for response/request processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	Processing = 0
	Body = 1
	Complete = 2
	Timeout = 10
	NoData = 11
	BadFormat = 12


# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class HTTPRequestError(Exception):
	"""To be raised by handlers to generate an error response, 500 unless
	a status is given."""

	def __init__(
		self,
		message: str,
		status: int | None = None,
		contentType: str | None = None,
		headers: dict[str, str] | None = None,
	):
		super().__init__(message)
		self.message: str = message
		self.status: int | None = status
		self.contentType: str | None = contentType
		self.headers: dict[str, str] | None = headers


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a body as bytes."""

	payload: bytes = b""
	length: int = 0


class HTTPBodyFile(NamedTuple):
	"""Represents an HTTP body read from a file, starting at `start` for
	`length` bytes (until the end when `None`). The `handle` is an already
	opened file, which is owned by the body and closed once written."""

	path: Path
	handle: BinaryIO | None = None
	start: int = 0
	length: int | None = None

	def close(self) -> None:
		if self.handle:
			self.handle.close()


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFile


# -----------------------------------------------------------------------------
#
# WRITER
#
# -----------------------------------------------------------------------------

FILE_CHUNK_SIZE: int = 64_000


class HTTPBodyWriter(ABC):
	"""A generic writer for response heads and bodies."""

	__slots__ = ["shouldClose"]

	def __init__(self) -> None:
		self.shouldClose: bool = False

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body."""
		if isinstance(body, bytes):
			return await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._writeBytes(body.payload)
		elif isinstance(body, HTTPBodyFile):
			return await self._writeFile(body)
		elif body is None:
			return True
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def _writeFile(self, body: HTTPBodyFile, size: int = FILE_CHUNK_SIZE) -> bool:
		"""Streams the file span chunk by chunk. Reads happen in the default
		executor, so that a slow disk only suspends this writer."""
		loop = asyncio.get_running_loop()
		handle: BinaryIO = (
			body.handle
			if body.handle
			else await loop.run_in_executor(None, open, body.path, "rb")
		)
		try:
			if body.start:
				await loop.run_in_executor(None, handle.seek, body.start)
			remaining: int | None = body.length
			while remaining is None or remaining > 0:
				n = size if remaining is None else min(size, remaining)
				chunk: bytes = await loop.run_in_executor(None, handle.read, n)
				if not chunk:
					break
				await self._writeBytes(chunk, True)
				if remaining is not None:
					remaining -= len(chunk)
			if remaining:
				# The file shrunk after the head was sent, the announced
				# length can't be honoured anymore.
				warning("File truncated while sending", Path=str(body.path), Missing=remaining)
				self.shouldClose = True
				return False
		finally:
			handle.close()
		return True

	@abstractmethod
	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool: ...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""Represents an HTTP requests, which also acts as a factory for
	responses."""

	__slots__ = [
		"protocol",
		"method",
		"path",
		"query",
		"peer",
		"_headers",
		"_body",
	]

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None,
		headers: HTTPHeaders,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
		peer: str | None = None,
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: dict[str, str] | None = query
		self.protocol: str = protocol
		self.peer: str | None = peer
		self._headers: HTTPHeaders = headers
		self._body: HTTPBodyBlob | None = body

	@staticmethod
	def Create(
		method: str = "GET",
		path: str = "/",
		headers: dict[str, str] | None = None,
		query: dict[str, str] | None = None,
	) -> "HTTPRequest":
		"""Creates a request out of the network, normalizing header names."""
		return HTTPRequest(
			method=method,
			path=path,
			query=query,
			headers=HTTPHeaders(
				{headername(k): v for k, v in (headers or {}).items()}
			),
		)

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	def param(self, name: str, default: str | None = None) -> str | None:
		return self.query.get(name, default) if self.query else default

	@property
	def body(self) -> HTTPBodyBlob | None:
		return self._body

	@property
	def keepAlive(self) -> bool:
		connection: str = (self.header("Connection") or "").lower()
		if self.protocol == "HTTP/1.0":
			return connection == "keep-alive"
		else:
			return connection != "close"

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			protocol=self.protocol,
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{f'?{self.query}' if self.query else ''} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response."""

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		payload: bytes | None = None
		updated_headers: dict[str, str] = (
			{headername(k): v for k, v in headers.items()} if headers else {}
		)

		# We process the body
		body: THTTPBody | None = None
		if content is None:
			pass
		elif isinstance(content, str):
			payload = content.encode(DEFAULT_ENCODING)
		elif isinstance(content, bytes):
			payload = content
		elif isinstance(content, HTTPBodyFile):
			body = content
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		# If we have a payload then it's a Blob response
		if payload is not None:
			contentLength = len(payload)
			body = HTTPBodyBlob(payload, contentLength)
		if contentType is not None:
			updated_headers["Content-Type"] = contentType
		if contentLength is not None:
			updated_headers["Content-Length"] = str(contentLength)
		elif "Content-Length" in updated_headers:
			contentLength = int(updated_headers["Content-Length"])
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=HTTPHeaders(
				updated_headers,
				contentType=contentType or updated_headers.get("Content-Type"),
				contentLength=contentLength,
			),
			body=body,
			protocol=protocol,
		)

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
		"shouldClose",
	]

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		super().__init__()
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body
		self.shouldClose: bool = shouldClose

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.headers.pop(headername(name), None)
		else:
			self.headers.headers[headername(name)] = str(value)
		return self

	def setHeaders(self, headers: dict[str, str | int | None]) -> "HTTPResponse":
		for k, v in headers.items():
			self.setHeader(k, v)
		return self

	def strip(self) -> "HTTPResponse":
		"""Drops the body while keeping the headers, as for `HEAD` requests."""
		if isinstance(self.body, HTTPBodyFile):
			self.body.close()
		self.body = None
		return self

	def head(self) -> bytes:
		"""Serializes the head as a payload."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		lines: list[str] = [
			f"{headername(k)}: {v}" for k, v in self.headers.headers.items()
		]
		lines.insert(0, f"{self.protocol} {self.status} {message}")
		lines.append("")
		lines.append("")
		# NOTE: Header values are ASCII by construction (paths are encoded)
		return "\r\n".join(lines).encode("latin-1")

	def close(self) -> None:
		"""Releases the resources held by the body, if any."""
		if isinstance(self.body, HTTPBodyFile):
			self.body.close()

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# EOF
