from pathlib import Path

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

# A fixed table so that responses don't depend on the host's mime.types
MIME_TYPES: dict[str, str] = {
	# Text
	"html": "text/html; charset=utf-8",
	"htm": "text/html; charset=utf-8",
	"css": "text/css; charset=utf-8",
	"csv": "text/csv; charset=utf-8",
	"txt": "text/plain; charset=utf-8",
	"text": "text/plain; charset=utf-8",
	"log": "text/plain; charset=utf-8",
	"md": "text/markdown; charset=utf-8",
	"markdown": "text/markdown; charset=utf-8",
	"xml": "application/xml",
	"yaml": "text/yaml; charset=utf-8",
	"yml": "text/yaml; charset=utf-8",
	"toml": "application/toml",
	"ics": "text/calendar; charset=utf-8",
	# Code
	"js": "text/javascript; charset=utf-8",
	"mjs": "text/javascript; charset=utf-8",
	"cjs": "text/javascript; charset=utf-8",
	"jsx": "text/jsx; charset=utf-8",
	"ts": "text/typescript; charset=utf-8",
	"tsx": "text/tsx; charset=utf-8",
	"json": "application/json",
	"jsonld": "application/ld+json",
	"map": "application/json",
	"webmanifest": "application/manifest+json",
	"wasm": "application/wasm",
	# Images
	"png": "image/png",
	"jpg": "image/jpeg",
	"jpeg": "image/jpeg",
	"gif": "image/gif",
	"webp": "image/webp",
	"avif": "image/avif",
	"svg": "image/svg+xml",
	"ico": "image/vnd.microsoft.icon",
	"bmp": "image/bmp",
	"tif": "image/tiff",
	"tiff": "image/tiff",
	"heic": "image/heic",
	# Fonts
	"woff": "font/woff",
	"woff2": "font/woff2",
	"ttf": "font/ttf",
	"otf": "font/otf",
	"eot": "application/vnd.ms-fontobject",
	# Audio and video
	"mp3": "audio/mpeg",
	"wav": "audio/wav",
	"ogg": "audio/ogg",
	"oga": "audio/ogg",
	"flac": "audio/flac",
	"m4a": "audio/mp4",
	"aac": "audio/aac",
	"mp4": "video/mp4",
	"m4v": "video/mp4",
	"webm": "video/webm",
	"ogv": "video/ogg",
	"mov": "video/quicktime",
	"avi": "video/x-msvideo",
	"mkv": "video/x-matroska",
	# Documents and archives
	"pdf": "application/pdf",
	"zip": "application/zip",
	"gz": "application/gzip",
	"tgz": "application/gzip",
	"bz2": "application/x-bzip2",
	"xz": "application/x-xz",
	"7z": "application/x-7z-compressed",
	"tar": "application/x-tar",
	"rar": "application/vnd.rar",
	"epub": "application/epub+zip",
	"apk": "application/vnd.android.package-archive",
}

# Names that have a more specific type than their extension
MIME_NAMES: dict[str, str] = {
	"importmap.json": "application/importmap+json",
}


def contentType(path: Path | str) -> str:
	"""Returns the content type for the given path, derived from its
	extension only."""
	name = path.name if isinstance(path, Path) else str(path).rsplit("/", 1)[-1]
	if res := MIME_NAMES.get(name):
		return res
	ext = name.rsplit(".", 1)[-1].lower() if "." in name.lstrip(".") else ""
	return MIME_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def formatSize(size: int) -> str:
	"""Formats a byte count for humans, like `1.5 KiB`."""
	value = float(size)
	for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
		if value < 1024 or unit == "TiB":
			return f"{size} B" if unit == "B" else f"{value:0.1f} {unit}"
		value /= 1024
	return f"{size} B"


# EOF
