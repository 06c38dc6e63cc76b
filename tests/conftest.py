import io
import os
from pathlib import Path
from typing import Callable, Iterator

import pytest

from servedir.config import ServeConfig
from servedir.http.model import HTTPBodyBlob, HTTPBodyFile, HTTPResponse
from servedir.services.files import FileService
from servedir.utils.logging import LogSettings, setLevel, setStream

# Bytes 0..255 repeated, so that any span can be checked by position
DATA: bytes = bytes(range(256)) * 4


@pytest.fixture(autouse=True)
def logs() -> Iterator[io.StringIO]:
	"""Captures the log output, restoring the level afterwards."""
	level, stream = LogSettings.level, LogSettings.stream
	out = io.StringIO()
	setStream(out)
	setLevel("Warning")
	yield out
	setStream(stream)
	setLevel(level)


@pytest.fixture
def site(tmp_path: Path) -> Path:
	"""A small served tree:

	- `hello.txt`, `data.bin` (1024 bytes), `.hidden`
	- `docs/` with `a.txt`, `b.md` and `.secret`
	- `withindex/` with `index.html`
	- `empty/`
	"""
	root = Path(os.path.realpath(tmp_path / "site"))
	root.mkdir()
	(root / "hello.txt").write_text("Hello, World!")
	(root / "data.bin").write_bytes(DATA)
	(root / ".hidden").write_text("hidden")
	(root / "docs").mkdir()
	(root / "docs" / "a.txt").write_text("A")
	(root / "docs" / "b.md").write_text("# B")
	(root / "docs" / ".secret").write_text("secret")
	(root / "withindex").mkdir()
	(root / "withindex" / "index.html").write_text("<h1>Index</h1>")
	(root / "empty").mkdir()
	return root


@pytest.fixture
def service(site: Path) -> FileService:
	return FileService(ServeConfig.Create(site))


@pytest.fixture
def readBody() -> Callable[[HTTPResponse], bytes]:
	"""Returns a function that reads the whole body of a response, closing
	any file it holds."""

	def read(response: HTTPResponse) -> bytes:
		body = response.body
		if body is None:
			return b""
		elif isinstance(body, HTTPBodyBlob):
			return body.payload
		elif isinstance(body, HTTPBodyFile):
			try:
				assert body.handle is not None
				body.handle.seek(body.start)
				return body.handle.read(-1 if body.length is None else body.length)
			finally:
				body.close()
		else:
			raise ValueError(f"Unsupported body: {body}")

	return read


# EOF
