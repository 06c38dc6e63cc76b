import re
from typing import ClassVar, Iterator, Literal, TypeAlias, Union
from ..utils.io import LineParser
from .model import (
	HTTPRequest,
	HTTPRequestLine,
	HTTPHeaders,
	HTTPBodyBlob,
	HTTPProcessingStatus,
	headername,
)

# Type alias for what the parser produces
HTTPAtom: TypeAlias = Union[
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
]

# Lines longer than this are rejected, as are header blocks bigger than
# `MAX_HEADERS_SIZE`.
MAX_LINE_SIZE: int = 8_192
MAX_HEADERS_SIZE: int = 65_536

# Scheme and authority of a request target in absolute form
ABSOLUTE_FORM: re.Pattern[str] = re.compile(r"^https?://[^/?#]*", re.IGNORECASE)


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "MessageParser":
		self.line.reset()
		self.value = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[HTTPRequestLine | Literal[False] | None, int]:
		"""Returns the parsed request line when complete, `False` when the
		line is malformed, and `None` when more data is needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return (False if self.line.pending > MAX_LINE_SIZE else None), read
		elif not line:
			# Empty lines preceding a request line are ignored
			return None, read
		else:
			self.value = self.Parse(line)
			return (self.value if self.value else False), read

	@staticmethod
	def Parse(line: bytes) -> HTTPRequestLine | None:
		try:
			ln: str = line.decode("utf8")
		except UnicodeDecodeError:
			return None
		parts = ln.split(" ")
		if len(parts) != 3:
			return None
		method, target, protocol = parts
		if not (method.isalpha() and method.isupper()):
			return None
		if not (protocol.startswith("HTTP/") and target):
			return None
		# The absolute form (`http://host/path`) is reduced to its path
		if m := ABSOLUTE_FORM.match(target):
			target = target[m.end() :]
			target = target if target.startswith("/") else f"/{target}"
		p: list[str] = target.split("?", 1)
		return HTTPRequestLine(method, p[0], p[1] if len(p) > 1 else "", protocol)

	def __str__(self) -> str:
		return f"MessageParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line", "size"]

	def __init__(self) -> None:
		super().__init__()
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None
		self.size: int = 0

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		self.size = 0
		return self

	@property
	def isOverflowing(self) -> bool:
		return self.size > MAX_HEADERS_SIZE

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. When the value is `None`, no
		header has been extracted, when the value is `False` it's the empty
		line ending the headers, otherwise it's the name of the parsed header."""
		line, read = self.line.feed(chunk, start)
		self.size += read
		if line is None:
			return None, read
		elif not line:
			# An empty line denotes the end of headers
			return False, read
		else:
			# Headers are expected to be in ASCII format
			ln: str = line.decode("latin-1")
			i = ln.find(":")
			if i == -1:
				return None, read
			h = ln[:i].strip()
			v = ln[i + 1 :].strip()
			n: str = headername(h)
			if n == "Content-Length":
				# An invalid length is kept as -1, which the parser rejects
				self.contentLength = int(v) if v.isdigit() else -1
			elif n == "Content-Type":
				self.contentType = v
			# Repeated headers are folded as a comma-separated list
			self.headers[n] = f"{self.headers[n]}, {v}" if n in self.headers else v
			return n, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodyLengthParser:
	"""Parses the body of a request with ContentLength set"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(b"".join(self.data), self.read)
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data.clear()
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool, int]:
		"""Returns `True` once the expected length has been read."""
		to_read: int = min(len(chunk) - start, self.expected - self.read)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return self.read >= self.expected, to_read


class HTTPParser:
	"""A stateful, incremental HTTP request parser. Chunks are fed as they
	come from the network, and atoms are yielded as soon as they're complete.
	A `HTTPProcessingStatus.BadFormat` atom means the stream can't be
	parsed any further."""

	# Bodies are only ever drained, as the server doesn't process them
	MAX_BODY_SIZE: ClassVar[int] = 1_000_000

	def __init__(self, peer: str | None = None) -> None:
		self.peer: str | None = peer
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.bodyLength: BodyLengthParser = BodyLengthParser()
		self.parser: MessageParser | HeadersParser | BodyLengthParser = self.message
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def reset(self) -> "HTTPParser":
		self.parser = self.message.reset()
		self.headers.reset()
		self.bodyLength.reset()
		self.requestLine = None
		self.requestHeaders = None
		return self

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# When a chunk is partially read, we don't need to re-feed it: the
			# underlying parser keeps a buffer up until it is flushed.
			if self.parser is self.message:
				line, read = self.message.feed(chunk, offset)
				offset += read
				if line is False:
					yield HTTPProcessingStatus.BadFormat
					return
				elif line:
					self.requestLine = self.message.flush()
					self.requestHeaders = None
					yield line
					self.parser = self.headers
			elif self.parser is self.headers:
				name, read = self.headers.feed(chunk, offset)
				offset += read
				if self.headers.isOverflowing:
					yield HTTPProcessingStatus.BadFormat
					return
				elif name is False:
					headers = self.headers.flush()
					self.requestHeaders = headers
					yield headers
					length: int = headers.contentLength or 0
					if (
						length < 0
						or length > self.MAX_BODY_SIZE
						or "Transfer-Encoding" in headers.headers
					):
						yield HTTPProcessingStatus.BadFormat
						return
					elif length:
						self.parser = self.bodyLength.reset(length)
						yield HTTPProcessingStatus.Body
					else:
						yield self.request(HTTPBodyBlob())
			else:
				done, read = self.bodyLength.feed(chunk, offset)
				offset += read
				if done:
					yield self.request(self.bodyLength.flush())

	def request(self, body: HTTPBodyBlob) -> HTTPRequest:
		"""Creates the request from what was parsed, and gets ready for the
		next request."""
		line = self.requestLine
		headers = self.requestHeaders
		self.parser = self.message.reset()
		if line is None or headers is None:
			raise RuntimeError("Parser has no request line or headers")
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=parseQuery(line.query),
			headers=headers,
			body=body,
			protocol=line.protocol,
			peer=self.peer,
		)


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		if len(kv) == 1:
			res[item] = ""
		else:
			res[kv[0]] = kv[1]
	return res


# EOF
