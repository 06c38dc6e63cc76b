import os
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, NamedTuple
from urllib.parse import quote

from ..utils.files import formatSize
from ..utils.htmpl import H, Node, html
from .resolver import isExposed

LISTING_CSS: str = """
:root {
	font-family: sans-serif;
	font-size: 14px;
	line-height: 1.35em;
	background: #F0F0F0;
	color: #202020;
}
main {
	max-width: 60em;
	margin: 0 auto;
	padding: 20px;
}
h1 {
	margin: 1.25em 0em;
	line-height: 1.25em;
	word-break: break-all;
}
table {
	width: 100%;
	border-collapse: collapse;
}
th, td {
	text-align: left;
	padding: 0.35em 0.75em;
}
td.size, td.date {
	white-space: nowrap;
	font-family: monospace;
	color: #606060;
}
tbody tr:nth-child(odd) {
	background: #E6E6E6;
}
"""


class ListingEntry(NamedTuple):
	name: str
	# One of `file`, `directory` or `symlink`
	kind: str
	size: int | None
	modifiedAt: float | None
	# Symlinks may point to directories
	isDirectory: bool = False

	def asPrimitive(self) -> dict[str, Any]:
		return {
			"name": self.name,
			"kind": self.kind,
			"size": self.size,
			"modifiedAt": self.modifiedAt,
			"isDirectory": self.isDirectory,
		}


def sortKey(entry: ListingEntry) -> tuple[bool, str]:
	"""Directories first, then by name in ordinal order."""
	return (not entry.isDirectory, entry.name)


def listEntries(
	path: Path,
	*,
	allowDotfiles: bool = True,
	root: Path | None = None,
	followSymlinks: bool = False,
) -> list[ListingEntry]:
	"""Lists the direct children of the directory at `path`. Entries that
	vanish while listing are skipped, broken symlinks are kept. When `root`
	is given, symlinks to locations that can't be served from it are listed
	with their own metadata rather than their target's."""
	entries: list[ListingEntry] = []
	with os.scandir(path) as items:
		for item in items:
			if not allowDotfiles and item.name.startswith("."):
				continue
			is_link: bool = item.is_symlink()
			follow: bool = not (
				is_link
				and root is not None
				and not isExposed(
					Path(item.path),
					root,
					allowDotfiles=allowDotfiles,
					followSymlinks=followSymlinks,
				)
			)
			try:
				st: os.stat_result | None = item.stat(follow_symlinks=follow)
			except OSError:
				if not is_link:
					continue
				st = None
			is_dir: bool = bool(st and stat.S_ISDIR(st.st_mode))
			entries.append(
				ListingEntry(
					name=item.name,
					kind="symlink" if is_link else "directory" if is_dir else "file",
					size=None if st is None or is_dir or not follow else st.st_size,
					modifiedAt=st.st_mtime if st else None,
					isDirectory=is_dir,
				)
			)
	return sorted(entries, key=sortKey)


def href(segments: tuple[str, ...] | list[str], directory: bool = False) -> str:
	"""Returns the absolute, percent-encoded URL path for the segments."""
	path = "/".join(quote(_, safe="") for _ in segments)
	if not path:
		return "/"
	return f"/{path}/" if directory else f"/{path}"


def formatDate(timestamp: float | None) -> str:
	if timestamp is None:
		return "-"
	return datetime.fromtimestamp(timestamp, timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def renderEntry(entry: ListingEntry, segments: tuple[str, ...]) -> Node:
	name: str = f"{entry.name}/" if entry.isDirectory else entry.name
	return H.tr(
		H.td(H.a(name, href=href(segments + (entry.name,), entry.isDirectory))),
		H.td("-" if entry.size is None else formatSize(entry.size), _="size"),
		H.td(formatDate(entry.modifiedAt), _="date"),
	)


def renderListing(entries: list[ListingEntry], segments: tuple[str, ...]) -> str:
	"""Renders the listing of the directory at `segments` as an HTML page."""
	title: str = href(segments, True)
	rows: list[Node] = []
	if segments:
		rows.append(
			H.tr(
				H.td(H.a("../", href=href(segments[:-1], True)), _="parent"),
				H.td("-", _="size"),
				H.td("", _="date"),
			)
		)
	rows += [renderEntry(_, segments) for _ in entries]
	# Breadcrumbs link each ancestor of the current directory
	crumbs: list[Node | str] = [H.a("/", href="/")]
	for i, segment in enumerate(segments):
		crumbs.append(H.a(segment, href=href(segments[: i + 1], True)))
		crumbs.append("/")
	return "".join(
		html(
			H.html(
				H.head(
					H.meta(charset="utf-8"),
					H.meta(
						name="viewport",
						content="width=device-width, initial-scale=1.0",
					),
					H.title(f"Index of {title}"),
					H.style(LISTING_CSS),
				),
				H.body(
					H.main(
						H.h1("Index of ", *crumbs),
						H.table(
							H.thead(H.tr(H.th("Name"), H.th("Size"), H.th("Modified"))),
							H.tbody(rows),
						),
					)
				),
				lang="en",
			),
			doctype="html",
		)
	)


# EOF
