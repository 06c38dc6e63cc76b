import os
from pathlib import Path

import pytest

from servedir.errors import InvalidEncoding, NotFound, PathTraversal
from servedir.files.resolver import (
	decodePath,
	isExposed,
	isWithin,
	normalizeSegments,
	resolvePath,
)


def test_root_paths(site: Path):
	for path in ("", "/", "//", "/./", "/docs/.."):
		res = resolvePath(site, path)
		assert res.path == site
		assert res.isRoot


def test_segments_are_normalized(site: Path):
	res = resolvePath(site, "//docs///./a.txt")
	assert res.segments == ("docs", "a.txt")
	assert res.path == site / "docs" / "a.txt"
	assert res.relative == "docs/a.txt"
	assert normalizeSegments("/a/b/../c") == ("a", "c")


@pytest.mark.parametrize(
	"path",
	[
		"/..",
		"/../etc/passwd",
		"/docs/../../etc/passwd",
		"/%2e%2e/etc/passwd",
		"/docs/%2E%2E/%2e%2e/x",
		"/%2e%2e%2fetc%2fpasswd",
	],
)
def test_traversal_is_rejected(site: Path, path: str):
	with pytest.raises(PathTraversal) as e:
		resolvePath(site, path)
	assert e.value.status == 400


def test_percent_decoding(site: Path):
	assert decodePath("/hello%20world.txt") == "/hello world.txt"
	assert decodePath("/caf%C3%A9") == "/café"
	# `+` is only a space in query strings
	assert decodePath("/a+b") == "/a+b"
	assert resolvePath(site, "/docs/a%2Etxt").segments == ("docs", "a.txt")


@pytest.mark.parametrize("path", ["/%zz", "/a%2", "/%", "/%ff", "/%C3%28", "/a%00b", "/a\x00b"])
def test_invalid_encoding(site: Path, path: str):
	with pytest.raises(InvalidEncoding) as e:
		resolvePath(site, path)
	assert e.value.status == 400


def test_component_prefix_is_not_containment(tmp_path: Path):
	assert isWithin(Path("/served"), Path("/served"))
	assert isWithin(Path("/served/a/b"), Path("/served"))
	assert not isWithin(Path("/served-evil"), Path("/served"))
	assert not isWithin(Path("/served-evil/secret"), Path("/served"))
	assert not isWithin(Path("/"), Path("/served"))


def test_symlink_escaping_the_root(tmp_path: Path):
	root = Path(os.path.realpath(tmp_path)) / "served"
	evil = Path(os.path.realpath(tmp_path)) / "served-evil"
	root.mkdir()
	evil.mkdir()
	(evil / "secret.txt").write_text("secret")
	(root / "link").symlink_to(evil, target_is_directory=True)
	(root / "file-link").symlink_to(evil / "secret.txt")
	for path in ("/link/secret.txt", "/link", "/file-link"):
		with pytest.raises(PathTraversal):
			resolvePath(root, path)
	# Unless links are explicitly allowed out of the root
	res = resolvePath(root, "/link/secret.txt", followSymlinks=True)
	assert res.path == root / "link" / "secret.txt"


def test_symlink_within_the_root(site: Path):
	(site / "alias").symlink_to(site / "docs", target_is_directory=True)
	res = resolvePath(site, "/alias/a.txt")
	assert res.segments == ("alias", "a.txt")


def test_dotfiles(site: Path):
	assert resolvePath(site, "/.hidden").segments == (".hidden",)
	for path in ("/.hidden", "/docs/.secret", "/.git/config", "/%2Ehidden"):
		with pytest.raises(NotFound) as e:
			resolvePath(site, path, allowDotfiles=False)
		assert e.value.status == 404
	# `.` and `..` are navigation, not dotfiles
	assert resolvePath(site, "/docs/./../hello.txt", allowDotfiles=False).segments == (
		"hello.txt",
	)


def test_links_to_dotfiles(site: Path):
	(site / "visible").symlink_to(site / ".hidden")
	(site / "notes").symlink_to(site / "docs" / ".secret")
	(site / "alias").symlink_to(site / "docs", target_is_directory=True)
	for path in ("/visible", "/notes"):
		assert resolvePath(site, path).segments == (path[1:],)
		with pytest.raises(NotFound):
			resolvePath(site, path, allowDotfiles=False)
	assert resolvePath(site, "/alias/a.txt", allowDotfiles=False).segments == (
		"alias",
		"a.txt",
	)


def test_exposed_locations(tmp_path: Path, site: Path):
	outside = Path(os.path.realpath(tmp_path)) / "outside.txt"
	outside.write_text("outside")
	(site / "escape").symlink_to(outside)
	(site / "visible").symlink_to(site / ".hidden")
	assert isExposed(site / "hello.txt", site, allowDotfiles=False)
	assert not isExposed(site / "escape", site)
	assert isExposed(site / "escape", site, followSymlinks=True)
	assert isExposed(site / "visible", site)
	assert not isExposed(site / "visible", site, allowDotfiles=False)


# EOF
