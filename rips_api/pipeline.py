"""Single-request pipeline: encode params, send with the session cookies, decode, map status to errors."""
from __future__ import annotations

import logging
import os
import threading
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote, urlencode, urlsplit

import requests
from requests.adapters import HTTPAdapter
import urllib3

from .cookies import CookieStore, MemoryCookieStore
from .errors import (
    STATUS_ERRORS,
    ApiError,
    ConfigurationError,
    TransportError,
    UnexpectedResponseError,
    UnexpectedStatusError,
)

logger = logging.getLogger(__name__)

METHODS = ("GET", "POST", "DELETE")
OPTION_KEYS = ("timeout", "verify", "cert", "proxies", "headers", "max_redirects")
DEFAULT_MAX_REDIRECTS = 10


@dataclass(frozen=True)
class FileUpload:
    """Marks a parameter value as a local file to be sent as a multipart file part."""
    path: str
    filename: Optional[str] = None
    content_type: str = "application/octet-stream"


@dataclass
class Outcome:
    """Result of one exchange: either ``value`` or ``error`` is meaningful."""
    status: Optional[int]
    value: Any = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def flatten_params(params: Any, prefix: Optional[str] = None) -> List[Tuple[str, Any]]:
    """Flatten nested mappings/sequences into ``key[sub]`` pairs (http_build_query style)."""
    pairs = params.items() if isinstance(params, Mapping) else enumerate(params)
    items: List[Tuple[str, Any]] = []
    for key, value in pairs:
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, FileUpload):
            items.append((name, value))
        elif isinstance(value, (Mapping, list, tuple)):
            items.extend(flatten_params(value, name))
        elif isinstance(value, (bytes, bytearray)):
            try:
                items.append((name, bytes(value).decode("utf-8")))
            except UnicodeDecodeError:
                raise ConfigurationError(f"Parameter {name} is not UTF-8 text, upload it as a file") from None
        elif isinstance(value, bool):
            items.append((name, "1" if value else "0"))
        else:
            items.append((name, str(value)))
    return items


def build_query_url(url: str, fields: List[Tuple[str, Any]]) -> str:
    if any(isinstance(v, FileUpload) for _, v in fields):
        raise ConfigurationError("File uploads can only be sent with POST")
    sep = "&" if urlsplit(url).query else "?"
    return url + sep + urlencode(fields, quote_via=quote)


def error_message(response: requests.Response) -> str:
    """``message`` field of a JSON error body, or an empty string."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict) and body.get("message") is not None:
        return str(body["message"])
    return ""


class RequestPipeline:
    """Owns the HTTP session and the cookie store; every API call goes through ``send``."""

    def __init__(self, cookie_store: Optional[CookieStore] = None,
                 options: Optional[Mapping[str, Any]] = None) -> None:
        self.cookie_store = cookie_store or MemoryCookieStore()
        self.session = requests.Session()
        self.session.cookies = self.cookie_store.jar  # type: ignore[assignment]
        self.session.verify = True
        self.session.max_redirects = DEFAULT_MAX_REDIRECTS
        # No retries: failures surface to the caller on the first attempt
        retry = urllib3.Retry(total=0, read=False)
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.timeout: Optional[float] = None
        self._lock = threading.Lock()
        self.configure(options or {})

    def configure(self, options: Mapping[str, Any]) -> None:
        unknown = sorted(set(options) - set(OPTION_KEYS))
        if unknown:
            raise ConfigurationError(f"Unknown transport option(s): {', '.join(unknown)}")
        if "verify" in options:
            verify = options["verify"]
            if verify is True:
                self.session.verify = True
            elif isinstance(verify, (str, os.PathLike)) and os.fspath(verify):
                self.session.verify = os.fspath(verify)
            else:
                raise ConfigurationError("TLS verification cannot be disabled; pass True or a CA bundle path")
        if "timeout" in options:
            self.timeout = options["timeout"]
        if "cert" in options:
            self.session.cert = options["cert"]
        if "proxies" in options:
            self.session.proxies.update(options["proxies"] or {})
        if "headers" in options:
            self.session.headers.update(options["headers"] or {})
        if "max_redirects" in options:
            self.session.max_redirects = int(options["max_redirects"])

    def close(self) -> None:
        self.session.close()
        self.cookie_store.close()

    @staticmethod
    def _multipart(fields: List[Tuple[str, Any]], stack: ExitStack) -> List[Tuple[str, Any]]:
        parts: List[Tuple[str, Any]] = []
        for name, value in fields:
            if isinstance(value, FileUpload):
                try:
                    fh = stack.enter_context(open(value.path, "rb"))
                except OSError as exc:
                    raise ConfigurationError(f"Cannot read upload file {value.path}: {exc.strerror}") from exc
                filename = value.filename or os.path.basename(value.path)
                parts.append((name, (filename, fh, value.content_type)))
            else:
                parts.append((name, (None, value)))
        return parts

    def attempt(self, method: str, url: str, params: Optional[Mapping[str, Any]] = None,
                raw: bool = False) -> Outcome:
        """Perform one exchange and return an ``Outcome`` instead of raising ``ApiError``."""
        method = method.upper()
        if method not in METHODS:
            raise ConfigurationError(f"Unsupported HTTP method {method}")
        fields = flatten_params(params) if params else []

        with self._lock, ExitStack() as stack:
            kwargs: Dict[str, Any] = {}
            if method == "POST":
                if fields:
                    kwargs["files"] = self._multipart(fields, stack)
            elif fields:
                url = build_query_url(url, fields)

            logger.debug("%s %s", method, url)
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as exc:
                logger.debug("Transport failure for %s %s: %s", method, url, exc)
                return Outcome(status=None, error=TransportError(str(exc)))
            self.cookie_store.save()

        logger.debug("%s %s -> %s", method, url, response.status_code)
        return self._decode(response, raw)

    def send(self, method: str, url: str, params: Optional[Mapping[str, Any]] = None,
             raw: bool = False) -> Any:
        """Perform one exchange; return the decoded body (or bytes) or raise an ``ApiError``."""
        return self.attempt(method, url, params, raw).unwrap()

    @staticmethod
    def _decode(response: requests.Response, raw: bool) -> Outcome:
        status = response.status_code
        if 200 <= status < 300:
            if raw:
                return Outcome(status=status, value=response.content)
            if not response.content:
                return Outcome(status=status, value=None)
            try:
                return Outcome(status=status, value=response.json())
            except ValueError:
                return Outcome(status=status, error=UnexpectedResponseError("Response is not valid JSON", status))

        message = error_message(response)
        error_cls = STATUS_ERRORS.get(status)
        if error_cls is None:
            logger.warning("Unexpected status %s from %s", status, response.url)
            return Outcome(status=status, error=UnexpectedStatusError(message, status))
        return Outcome(status=status, error=error_cls(message))
