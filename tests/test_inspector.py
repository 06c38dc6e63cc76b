import os
from pathlib import Path

import pytest

from servedir.files.inspector import (
	Directory,
	NotFound,
	RegularFile,
	Unreadable,
	inspect,
)
from servedir.utils.files import DEFAULT_CONTENT_TYPE, contentType, formatSize

skipIfRoot = pytest.mark.skipif(
	hasattr(os, "geteuid") and os.geteuid() == 0,
	reason="permissions don't apply to root",
)


def test_regular_file(site: Path):
	res = inspect(site / "hello.txt")
	assert isinstance(res, RegularFile)
	assert res.size == len("Hello, World!")
	assert res.modifiedAt == os.stat(site / "hello.txt").st_mtime
	assert res.contentType == "text/plain; charset=utf-8"


def test_directory(site: Path):
	res = inspect(site / "docs")
	assert isinstance(res, Directory)
	assert res.path == site / "docs"


def test_missing(site: Path):
	assert isinstance(inspect(site / "missing.txt"), NotFound)
	# A path through a file fails with `NotADirectoryError`
	assert isinstance(inspect(site / "hello.txt" / "x"), NotFound)


def test_broken_symlink(site: Path):
	(site / "broken").symlink_to(site / "nowhere")
	assert isinstance(inspect(site / "broken"), NotFound)


def test_symlink_is_followed(site: Path):
	(site / "link.txt").symlink_to(site / "hello.txt")
	res = inspect(site / "link.txt")
	assert isinstance(res, RegularFile)
	assert res.size == len("Hello, World!")


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="no FIFO support")
def test_special_files_are_not_found(site: Path):
	os.mkfifo(site / "pipe")
	assert isinstance(inspect(site / "pipe"), NotFound)


@skipIfRoot
def test_unreadable_file(site: Path):
	path = site / "locked.txt"
	path.write_text("locked")
	path.chmod(0)
	try:
		res = inspect(path)
		assert isinstance(res, Unreadable)
		assert res.path == path
	finally:
		path.chmod(0o644)


@skipIfRoot
def test_unreadable_directory(site: Path):
	path = site / "locked"
	path.mkdir()
	path.chmod(0)
	try:
		assert isinstance(inspect(path), Unreadable)
	finally:
		path.chmod(0o755)


@pytest.mark.parametrize(
	"name,expected",
	[
		("index.html", "text/html; charset=utf-8"),
		("style.CSS", "text/css; charset=utf-8"),
		("app.js", "text/javascript; charset=utf-8"),
		("data.json", "application/json"),
		("importmap.json", "application/importmap+json"),
		("photo.jpeg", "image/jpeg"),
		("archive.tar.gz", "application/gzip"),
		("Makefile", DEFAULT_CONTENT_TYPE),
		(".bashrc", DEFAULT_CONTENT_TYPE),
		("file.unknown", DEFAULT_CONTENT_TYPE),
	],
)
def test_content_type(name: str, expected: str):
	assert contentType(Path(name)) == expected
	assert contentType(f"/some/dir/{name}") == expected


def test_format_size():
	assert formatSize(0) == "0 B"
	assert formatSize(1023) == "1023 B"
	assert formatSize(1536) == "1.5 KiB"
	assert formatSize(5 * 1024 * 1024) == "5.0 MiB"


# EOF
