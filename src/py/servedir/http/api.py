from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from ..utils.json import json
from .status import HTTP_STATUS

T = TypeVar("T")

# --
# The shorthands that requests offer to create their responses, all of them
# going through `respond`.

TEXT_PLAIN: str = "text/plain; charset=utf-8"
TEXT_HTML: str = "text/html; charset=utf-8"


class ResponseFactory(ABC, Generic[T]):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> T: ...

	def respondText(self, content: str | bytes, status: int = 200) -> T:
		return self.respond(content, TEXT_PLAIN, status=status)

	def respondHTML(self, content: str | bytes, status: int = 200) -> T:
		return self.respond(content, TEXT_HTML, status=status)

	def returns(self, value: Any, headers: dict[str, str] | None = None) -> T:
		"""Responds with the value as JSON."""
		return self.respond(json(value), "application/json", headers=headers)

	def empty(self, status: int = 204, headers: dict[str, str] | None = None) -> T:
		return self.respond(status=status, headers=headers)

	def notModified(self, headers: dict[str, str] | None = None) -> T:
		return self.respond(status=304, headers=headers)

	def error(
		self,
		status: int,
		content: str | None = None,
		headers: dict[str, str] | None = None,
	) -> T:
		"""Responds with the status as plain text, its reason phrase being
		the default content."""
		reason: str = HTTP_STATUS.get(status, "Server Error")
		return self.respond(
			reason if content is None else content,
			TEXT_PLAIN,
			status=status,
			headers=headers,
			message=reason,
		)

	def notFound(self) -> T:
		return self.error(404)

	def notAllowed(self, allowed: list[str]) -> T:
		return self.error(405, headers={"Allow": ", ".join(allowed)})


# EOF
