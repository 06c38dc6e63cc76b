from typing import ClassVar
from .http.model import HTTPRequestError

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------
# Errors raised while serving a request. Each carries the status it maps to,
# the file service turns them into responses.


class ServeError(HTTPRequestError):
	STATUS: ClassVar[int] = 500

	def __init__(self, message: str, headers: dict[str, str] | None = None):
		super().__init__(message, status=self.STATUS, headers=headers)


class InvalidEncoding(ServeError):
	"""The request path can't be decoded, or contains a NUL byte."""

	STATUS = 400


class InvalidTarget(ServeError):
	"""The request target is neither an absolute path nor an absolute URL."""

	STATUS = 400


class PathTraversal(ServeError):
	"""The request path resolves outside of the served root."""

	STATUS = 400


class Forbidden(ServeError):
	"""The resource exists but policy forbids serving it, like a directory
	when listings are disabled."""

	STATUS = 403


class NotFound(ServeError):
	STATUS = 404


class Unreadable(ServeError):
	"""The resource exists but can't be read by the server process."""

	STATUS = 403


class UnsatisfiableRange(ServeError):
	STATUS = 416

	def __init__(self, size: int):
		super().__init__(
			f"Range not satisfiable for {size} bytes",
			headers={"Content-Range": f"bytes */{size}"},
		)
		self.size: int = size


class InternalFault(ServeError):
	STATUS = 500


# EOF
