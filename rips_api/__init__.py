"""
RIPS API client.
- RequestPipeline: one HTTP exchange (cookies, param encoding, JSON/raw decoding, status -> error)
- Client: session handling (login/relogin/logout), scan polling and the resource methods
- cookie stores: in-memory (default) or a cookie file
"""
from .client import Client
from .config import ClientConfig, load_client_config
from .cookies import CookieStore, FileCookieStore, MemoryCookieStore
from .errors import (
    ApiError,
    BadRequestError,
    ConfigurationError,
    NotAuthorizedError,
    NotFoundError,
    PollCancelledError,
    RipsError,
    ScanTimeoutError,
    ServerError,
    TransportError,
    UnexpectedResponseError,
    UnexpectedStatusError,
)
from .models import ScanStatus
from .pipeline import FileUpload, Outcome, RequestPipeline
