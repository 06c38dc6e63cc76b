import os
from pathlib import Path

from servedir.files.listing import (
	ListingEntry,
	href,
	listEntries,
	renderListing,
)
from servedir.utils.json import json, unjson


def names(entries: list[ListingEntry]) -> list[str]:
	return [_.name for _ in entries]


def test_directories_first_then_ordinal(tmp_path: Path):
	for name in ("b", "A"):
		(tmp_path / name).mkdir()
	for name in ("a.txt", "B.txt", "c", "_z"):
		(tmp_path / name).write_text(name)
	assert names(listEntries(tmp_path)) == ["A", "b", "B.txt", "_z", "a.txt", "c"]


def test_listing_is_deterministic(site: Path):
	assert listEntries(site) == listEntries(site)


def test_entries(site: Path):
	entries = {_.name: _ for _ in listEntries(site / "docs")}
	assert entries["a.txt"].kind == "file"
	assert entries["a.txt"].size == 1
	assert entries["a.txt"].modifiedAt is not None
	assert not entries["a.txt"].isDirectory


def test_dotfiles_are_omitted(site: Path):
	assert ".secret" in names(listEntries(site / "docs"))
	assert ".secret" not in names(listEntries(site / "docs", allowDotfiles=False))
	assert ".hidden" not in names(listEntries(site, allowDotfiles=False))


def test_symlinks(site: Path):
	(site / "empty" / "to-docs").symlink_to(site / "docs", target_is_directory=True)
	(site / "empty" / "broken").symlink_to(site / "nowhere")
	entries = {_.name: _ for _ in listEntries(site / "empty")}
	assert entries["to-docs"].kind == "symlink"
	assert entries["to-docs"].isDirectory
	assert entries["to-docs"].size is None
	# Broken links are listed, without metadata
	assert entries["broken"].kind == "symlink"
	assert entries["broken"].modifiedAt is None
	assert names(listEntries(site / "empty")) == ["to-docs", "broken"]


def test_links_out_of_the_root(tmp_path: Path, site: Path):
	outside = Path(os.path.realpath(tmp_path)) / "outside.bin"
	outside.write_bytes(b"\0" * 5000)
	os.utime(outside, (1_000_000_000, 1_000_000_000))
	(site / "empty" / "escape").symlink_to(outside)
	(site / "empty" / "visible").symlink_to(site / ".hidden")
	listed = {_.name: _ for _ in listEntries(site / "empty", root=site)}
	# Links that can't be served don't disclose their target's metadata
	assert listed["escape"].kind == "symlink"
	assert listed["escape"].size is None
	assert listed["escape"].modifiedAt != 1_000_000_000
	assert listed["visible"].size == len("hidden")
	listed = {
		_.name: _ for _ in listEntries(site / "empty", root=site, allowDotfiles=False)
	}
	assert listed["visible"].size is None
	listed = {
		_.name: _ for _ in listEntries(site / "empty", root=site, followSymlinks=True)
	}
	assert listed["escape"].size == 5000
	assert listed["escape"].modifiedAt == 1_000_000_000


def test_href():
	assert href(()) == "/"
	assert href((), True) == "/"
	assert href(("docs",), True) == "/docs/"
	assert href(("docs", "a b.txt")) == "/docs/a%20b.txt"
	assert href(("100%", "#1?.txt")) == "/100%25/%231%3F.txt"


def test_render_root(site: Path):
	page = renderListing(listEntries(site), ())
	assert page.startswith("<!DOCTYPE html>")
	assert "<title>Index of /</title>" in page
	assert ">../<" not in page
	assert '<a href="/docs/">docs/</a>' in page
	assert '<a href="/hello.txt">hello.txt</a>' in page
	assert "13 B" in page


def test_render_subdirectory(site: Path):
	page = renderListing(listEntries(site / "docs"), ("docs",))
	assert "<title>Index of /docs/</title>" in page
	assert '<a href="/">../</a>' in page
	assert '<a href="/docs/a.txt">a.txt</a>' in page
	assert page.index("a.txt") < page.index("b.md")


def test_render_escapes_names(tmp_path: Path):
	(tmp_path / "<b>&'.txt").write_text("x")
	page = renderListing(listEntries(tmp_path), ("dir",))
	assert "<b>" not in page
	assert "&lt;b&gt;&amp;&#x27;.txt" in page
	assert 'href="/dir/%3Cb%3E%26%27.txt"' in page


def test_render_hides_dotfiles(site: Path):
	page = renderListing(listEntries(site / "docs", allowDotfiles=False), ("docs",))
	assert ".secret" not in page


def test_json(site: Path):
	data = unjson(json(listEntries(site / "docs")))
	assert isinstance(data, list)
	assert [_["name"] for _ in data] == [".secret", "a.txt", "b.md"]
	assert data[1]["kind"] == "file"
	assert data[1]["size"] == 1


# EOF
