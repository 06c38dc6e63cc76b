import os
import re
from pathlib import Path
from typing import NamedTuple
from urllib.parse import unquote

from ..errors import InvalidEncoding, NotFound, PathTraversal

# A `%` that is not followed by two hex digits
RE_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class Resolution(NamedTuple):
	"""A request path resolved to a local path within the served root."""

	path: Path
	segments: tuple[str, ...]

	@property
	def isRoot(self) -> bool:
		return not self.segments

	@property
	def relative(self) -> str:
		return "/".join(self.segments)


def decodePath(path: str) -> str:
	"""Percent-decodes the path as UTF-8, rejecting malformed escapes and
	NUL bytes."""
	if "\x00" in path or RE_BAD_ESCAPE.search(path):
		raise InvalidEncoding(f"Malformed path encoding: {path!r}")
	try:
		decoded = unquote(path, errors="strict")
	except UnicodeDecodeError:
		raise InvalidEncoding(f"Path is not valid UTF-8: {path!r}")
	if "\x00" in decoded:
		raise InvalidEncoding(f"Path contains a NUL byte: {path!r}")
	return decoded


def normalizeSegments(path: str) -> tuple[str, ...]:
	"""Splits the decoded path and resolves `.` and `..` lexically. Climbing
	above the first segment is a traversal."""
	segments: list[str] = []
	for segment in path.split("/"):
		if not segment or segment == ".":
			continue
		elif segment == "..":
			if not segments:
				raise PathTraversal(f"Path escapes the served root: {path!r}")
			segments.pop()
		else:
			segments.append(segment)
	return tuple(segments)


def isWithin(path: Path, root: Path) -> bool:
	"""Tells if `path` is `root` or below it, comparing components so that
	`/served-evil` is not within `/served`."""
	return path.parts[: len(root.parts)] == root.parts


def isDotted(segments: tuple[str, ...] | list[str]) -> bool:
	return any(_.startswith(".") for _ in segments)


def isExposed(
	path: Path,
	root: Path,
	*,
	allowDotfiles: bool = True,
	followSymlinks: bool = False,
) -> bool:
	"""Tells if the location `path` points to once symbolic links are
	resolved can be served from `root`."""
	real = Path(os.path.realpath(path))
	if not isWithin(real, root):
		return followSymlinks
	return allowDotfiles or not isDotted(real.parts[len(root.parts) :])


def resolvePath(
	root: Path,
	path: str,
	*,
	allowDotfiles: bool = True,
	followSymlinks: bool = False,
) -> Resolution:
	"""Resolves the raw request `path` against the canonical `root`. The
	result is checked both lexically and, unless `followSymlinks`, once
	symbolic links are resolved. Dotfiles are hidden in both the requested
	path and the path it links to."""
	segments = normalizeSegments(decodePath(path))
	if not allowDotfiles and isDotted(segments):
		raise NotFound(f"Dotfiles are not served: {path!r}")
	local_path = root.joinpath(*segments)
	if not isWithin(local_path, root):
		raise PathTraversal(f"Path escapes the served root: {path!r}")
	real = Path(os.path.realpath(local_path))
	if not isWithin(real, root):
		if not followSymlinks:
			raise PathTraversal(f"Path links outside of the served root: {path!r}")
	elif not allowDotfiles and isDotted(real.parts[len(root.parts) :]):
		raise NotFound(f"Path links to a dotfile: {path!r}")
	return Resolution(local_path, segments)


# EOF
