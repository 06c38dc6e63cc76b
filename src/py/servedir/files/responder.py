import os
import re
from email.utils import formatdate, parsedate_to_datetime
from typing import BinaryIO, NamedTuple

from ..errors import NotFound, Unreadable, UnsatisfiableRange
from ..http.model import HTTPBodyFile, HTTPRequest, HTTPResponse
from .inspector import RegularFile

# --
# == File responses
#
# Validators, conditional requests and single byte ranges. Multi-range
# requests are answered with the whole file.

RE_RANGE = re.compile(r"^bytes=\s*(\d*)\s*-\s*(\d*)\s*$")


class ByteRange(NamedTuple):
	"""An inclusive span of bytes."""

	start: int
	end: int

	@property
	def length(self) -> int:
		return self.end - self.start + 1

	def contentRange(self, size: int) -> str:
		return f"bytes {self.start}-{self.end}/{size}"


def entityTag(size: int, modifiedAt: float) -> str:
	"""A weak entity tag derived from the size and modification time."""
	return f'W/"{size:x}-{int(modifiedAt * 1000):x}"'


def httpDate(timestamp: float) -> str:
	return formatdate(timestamp, usegmt=True)


def parseHTTPDate(value: str) -> float | None:
	try:
		return parsedate_to_datetime(value).timestamp()
	except (TypeError, ValueError, IndexError, OverflowError):
		return None


def parseRange(value: str | None, size: int) -> ByteRange | None:
	"""Parses a single `bytes=` range against the given size. Returns `None`
	when there's no usable range (missing, malformed, multiple ranges) and
	raises `UnsatisfiableRange` when the range can't be served."""
	if not value:
		return None
	match = RE_RANGE.match(value)
	if not match:
		return None
	first, last = match.groups()
	if not first and not last:
		return None
	elif not first:
		# A suffix range, like `bytes=-500` for the last 500 bytes
		suffix = int(last)
		if suffix == 0 or size == 0:
			raise UnsatisfiableRange(size)
		return ByteRange(max(0, size - suffix), size - 1)
	start = int(first)
	end = int(last) if last else size - 1
	if last and end < start:
		return None
	if start >= size:
		raise UnsatisfiableRange(size)
	return ByteRange(start, min(end, size - 1))


def weak(tag: str) -> str:
	return tag[2:] if tag.startswith("W/") else tag


def matchesTag(header: str, tag: str) -> bool:
	"""Weak comparison of `tag` against an `If-None-Match` style list."""
	candidates = [_.strip() for _ in header.split(",")]
	return "*" in candidates or weak(tag) in (weak(_) for _ in candidates)


def isNotModified(request: HTTPRequest, tag: str, modifiedAt: float) -> bool:
	"""Evaluates `If-None-Match`, or `If-Modified-Since` when absent."""
	if (none_match := request.header("If-None-Match")) is not None:
		return matchesTag(none_match, tag)
	elif since := request.header("If-Modified-Since"):
		timestamp = parseHTTPDate(since)
		# HTTP dates have a one second resolution
		return timestamp is not None and int(modifiedAt) <= timestamp
	else:
		return False


def isRangeCurrent(request: HTTPRequest, tag: str, modifiedAt: float) -> bool:
	"""Evaluates `If-Range`: a range only applies to the representation the
	client already has. Entity tags are compared strongly, so that the weak
	tags this server emits never validate a range."""
	value = request.header("If-Range")
	if value is None:
		return True
	elif value.startswith('"') or value.startswith("W/"):
		value = value.strip()
		return not (value.startswith("W/") or tag.startswith("W/")) and value == tag
	else:
		timestamp = parseHTTPDate(value)
		return timestamp is not None and int(modifiedAt) <= timestamp


def openFile(file: RegularFile) -> tuple[BinaryIO, int, float]:
	"""Opens the file, returning the handle with the size and modification
	time it has now, as it may have changed since it was inspected."""
	try:
		handle: BinaryIO = open(file.path, "rb")
	except PermissionError:
		raise Unreadable(f"File is not readable: {file.path}")
	except OSError:
		raise NotFound(f"File vanished: {file.path}")
	try:
		st = os.fstat(handle.fileno())
	except OSError:
		handle.close()
		raise
	return handle, st.st_size, st.st_mtime


def respondFile(
	request: HTTPRequest, file: RegularFile, *, withBody: bool = True
) -> HTTPResponse:
	"""Responds with the given file, honouring conditional and range
	requests. The body is streamed from an already opened handle."""
	tag: str = entityTag(file.size, file.modifiedAt)
	validators: dict[str, str] = {
		"ETag": tag,
		"Last-Modified": httpDate(file.modifiedAt),
	}
	if isNotModified(request, tag, file.modifiedAt):
		return request.notModified(validators)
	handle: BinaryIO | None = None
	size, modified_at = file.size, file.modifiedAt
	if withBody:
		handle, size, modified_at = openFile(file)
		if (size, modified_at) != (file.size, file.modifiedAt):
			tag = entityTag(size, modified_at)
			validators = {"ETag": tag, "Last-Modified": httpDate(modified_at)}
	try:
		span: ByteRange | None = (
			parseRange(request.header("Range"), size)
			if isRangeCurrent(request, tag, modified_at)
			else None
		)
	except UnsatisfiableRange:
		if handle:
			handle.close()
		raise
	headers: dict[str, str] = validators | {"Accept-Ranges": "bytes"}
	if span:
		headers["Content-Range"] = span.contentRange(size)
	return request.respond(
		content=(
			HTTPBodyFile(
				file.path,
				handle,
				span.start if span else 0,
				span.length if span else size,
			)
			if handle
			else None
		),
		contentType=file.contentType,
		contentLength=span.length if span else size,
		status=206 if span else 200,
		headers=headers,
	)


# EOF
