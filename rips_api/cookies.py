"""Cookie stores holding the session token exchanged with every request."""
from __future__ import annotations

import logging
import os
import tempfile
from http.cookiejar import CookieJar, LoadError, MozillaCookieJar
from typing import Optional

from requests.cookies import RequestsCookieJar

logger = logging.getLogger(__name__)


class CookieStore:
    """Owns one cookie jar. ``save`` runs after every request, ``close`` once at the end."""

    jar: CookieJar

    def save(self) -> None:
        pass

    def close(self) -> None:
        pass


class MemoryCookieStore(CookieStore):
    def __init__(self) -> None:
        self.jar = RequestsCookieJar()


class FileCookieStore(CookieStore):
    """Netscape cookie file. Without a path a temp file is created and removed on close."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.temporary = path is None
        if path is None:
            fd, path = tempfile.mkstemp(prefix="cookies")
            os.close(fd)
        self.path = path
        self.jar = MozillaCookieJar(path)
        if os.path.exists(path) and os.path.getsize(path) > 0:
            try:
                self.jar.load(ignore_discard=True, ignore_expires=True)
            except LoadError as exc:
                logger.warning("Ignoring unreadable cookie file %s: %s", path, exc)
        logger.debug("Using cookie file %s (temporary=%s)", path, self.temporary)

    def save(self) -> None:
        self.jar.save(ignore_discard=True, ignore_expires=True)

    def close(self) -> None:
        if self.temporary and os.path.exists(self.path):
            os.remove(self.path)
            logger.debug("Removed cookie file %s", self.path)
