from .http.model import (
    HTTPRequest,
    HTTPResponse,
    HTTPRequestError,
)  # NOQA: F401
from .config import ServeConfig  # NOQA: F401
from .decorators import on  # NOQA: F401
from .server import run  # NOQA: F401
from .model import Service  # NOQA: F401
from .services.files import FileService  # NOQA: F401

__version__ = "1.0.0"

# EOF
