import os
import stat
from pathlib import Path
from typing import NamedTuple, TypeAlias

from ..utils.files import contentType


class RegularFile(NamedTuple):
	path: Path
	size: int
	modifiedAt: float
	contentType: str


class Directory(NamedTuple):
	path: Path
	modifiedAt: float


class NotFound(NamedTuple):
	path: Path


class Unreadable(NamedTuple):
	path: Path
	reason: str


# What a resolved path turns out to be
TResource: TypeAlias = RegularFile | Directory | NotFound | Unreadable


def inspect(path: Path) -> TResource:
	"""Stats the path, following symbolic links. Special files (sockets,
	devices, FIFOs) are reported as not found."""
	try:
		st = os.stat(path)
	except PermissionError as e:
		return Unreadable(path, e.strerror or "Permission denied")
	except OSError:
		# Missing, not a directory, name too long or a symlink loop
		return NotFound(path)
	mode: int = st.st_mode
	if stat.S_ISDIR(mode):
		return (
			Directory(path, st.st_mtime)
			if os.access(path, os.R_OK | os.X_OK)
			else Unreadable(path, "Directory is not readable")
		)
	elif stat.S_ISREG(mode):
		return (
			RegularFile(path, st.st_size, st.st_mtime, contentType(path))
			if os.access(path, os.R_OK)
			else Unreadable(path, "File is not readable")
		)
	else:
		return NotFound(path)


# EOF
