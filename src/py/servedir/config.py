import os
from os import getenv
from pathlib import Path
from typing import NamedTuple

PORT: int = int(getenv("PORT", 4507))

# The server is meant to be reached from other devices on the network
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

LOG_LEVEL: str | None = getenv("SERVEDIR_LOG_LEVEL")

INDEX_FILE: str = "index.html"

SERVER_NAME: str = "servedir"


class ServeConfig(NamedTuple):
	"""The immutable configuration of a file service, created once at
	startup and passed explicitly to the service."""

	root: Path
	allowListing: bool = True
	allowDotfiles: bool = True
	allowCORS: bool = True
	quiet: bool = True
	# Serves `index.html` in place of a directory that has one
	showIndex: bool = True
	# Allows symbolic links to resolve outside of the root
	followSymlinks: bool = False
	# Answers 404 instead of 403 for unreadable resources
	hideUnreadable: bool = False

	@staticmethod
	def Create(
		root: str | Path | None = None,
		*,
		allowListing: bool = True,
		allowDotfiles: bool = True,
		allowCORS: bool = True,
		quiet: bool = True,
		showIndex: bool = True,
		followSymlinks: bool = False,
		hideUnreadable: bool = False,
	) -> "ServeConfig":
		"""Creates a configuration with a canonical root, raising
		`NotADirectoryError` when the root is not an existing directory."""
		path = Path(os.path.realpath(root or "."))
		if not path.is_dir():
			raise NotADirectoryError(f"Served root is not a directory: {path}")
		return ServeConfig(
			root=path,
			allowListing=allowListing,
			allowDotfiles=allowDotfiles,
			allowCORS=allowCORS,
			quiet=quiet,
			showIndex=showIndex,
			followSymlinks=followSymlinks,
			hideUnreadable=hideUnreadable,
		)


# EOF
