from ..http.model import HTTPResponse

# --
# == CORS
#
# The served files are public, so any origin may read them. Only the read
# methods are allowed, and the validators and range headers are exposed so
# that cross-origin clients can do conditional and partial requests.
#
# SEE: https://developer.mozilla.org/en-US/docs/Web/HTTP/CORS

CORS_METHODS: list[str] = ["GET", "HEAD", "OPTIONS"]

CORS_ALLOW_HEADERS: list[str] = [
	"Range",
	"If-None-Match",
	"If-Modified-Since",
	"If-Range",
	"Content-Type",
]

CORS_EXPOSE_HEADERS: list[str] = [
	"Content-Range",
	"Content-Length",
	"Accept-Ranges",
	"ETag",
	"Last-Modified",
]


def setCORSHeaders(
	response: HTTPResponse,
	*,
	origin: str = "*",
	methods: list[str] | None = None,
) -> HTTPResponse:
	"""Sets the CORS headers on the given response, which is returned."""
	return response.setHeaders(
		{
			"Access-Control-Allow-Origin": origin,
			"Access-Control-Allow-Methods": ", ".join(methods or CORS_METHODS),
			"Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
			"Access-Control-Expose-Headers": ", ".join(CORS_EXPOSE_HEADERS),
		}
	)


# EOF
