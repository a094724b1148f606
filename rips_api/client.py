from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

from .config import DEFAULT_POLL_INTERVAL, DEFAULT_SERVER, ClientConfig
from .cookies import CookieStore, FileCookieStore
from .errors import ConfigurationError, NotAuthorizedError, PollCancelledError, ScanTimeoutError
from .models import ScanStatus
from .pipeline import FileUpload, RequestPipeline

logger = logging.getLogger(__name__)

Params = Optional[Mapping[str, Any]]


class Client:
    """Object-oriented interface to the RIPS API.

    All calls share one ``RequestPipeline`` and therefore one cookie store, so the
    session token obtained by ``login`` is sent with every later request. An
    instance is not safe for concurrent use from several threads.
    """

    def __init__(self, server: Optional[str] = None, options: Optional[Mapping[str, Any]] = None,
                 cookie_store: Optional[CookieStore] = None) -> None:
        self.server = (server or DEFAULT_SERVER).rstrip("/")
        self.pipeline = RequestPipeline(cookie_store, options)
        self.login_data: Optional[Dict[str, Any]] = None
        self.poll_interval: float = DEFAULT_POLL_INTERVAL
        self.max_wait: Optional[float] = None
        self._logged_in = False

    @classmethod
    def from_config(cls, cfg: ClientConfig) -> "Client":
        store = FileCookieStore(cfg.cookie_file) if cfg.cookie_file else None
        client = cls(cfg.url, cfg.transport_options(), store)
        client.poll_interval = cfg.poll_interval
        client.max_wait = cfg.max_wait
        return client

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP session and the cookie store (removes a temporary cookie file)."""
        self.pipeline.close()

    @property
    def logged_in(self) -> bool:
        return self._logged_in

    def _url(self, *parts: Any) -> str:
        return self.server + "/" + "/".join(str(p) for p in parts) + "/"

    def _get(self, url: str, data: Params = None, raw: bool = False) -> Any:
        return self.pipeline.send("GET", url, data, raw=raw)

    def _post(self, url: str, data: Params = None) -> Any:
        return self.pipeline.send("POST", url, data)

    def _delete(self, url: str, data: Params = None) -> Any:
        return self.pipeline.send("DELETE", url, data)

    # ---------- Session ----------
    def login(self, data: Mapping[str, Any]) -> Any:
        """Log in (``{"name": ..., "password": ...}``); the token is kept in the cookie store."""
        self.login_data = dict(data)
        self._logged_in = False
        result = self._post(self._url("login"), data)
        self._logged_in = True
        logger.info("Logged in to %s", self.server)
        return result

    def relogin(self) -> bool:
        """Log in again with the stored credentials, but only if the session has expired.

        Returns True when a new login was performed.
        """
        if not self.login_data:
            raise ConfigurationError("relogin() requires credentials from a previous login()")
        probe = self.pipeline.attempt("GET", self._url("status"))
        if probe.ok:
            self._logged_in = True
            return False
        if isinstance(probe.error, NotAuthorizedError):
            logger.info("Session expired, logging in again")
            self.login(self.login_data)
            return True
        raise probe.error  # type: ignore[misc]

    def logout(self) -> Any:
        # Local state is cleared even if the request below fails
        self.login_data = None
        self._logged_in = False
        logger.info("Logging out from %s", self.server)
        return self._post(self._url("logout"))

    def get_status(self) -> Any:
        return self._get(self._url("status"))

    def get_version(self) -> Any:
        return self._get(self._url("version"))

    def get_stats(self) -> Any:
        return self._get(self._url("stats"))

    # ---------- Polling ----------
    def block_until_finished(self, project_id: int, max_wait: Optional[float] = None,
                             poll_interval: Optional[float] = None,
                             cancel: Optional[threading.Event] = None) -> ScanStatus:
        """Block until the scan of ``project_id`` reports phase 0 at 100 percent.

        Without ``max_wait`` this waits forever. ``cancel`` is checked between polls
        and interrupts the sleep; API errors abort the wait immediately.
        """
        if max_wait is None:
            max_wait = self.max_wait
        if poll_interval is None:
            poll_interval = self.poll_interval
        if poll_interval <= 0:
            raise ConfigurationError(f"poll_interval must be positive, got {poll_interval!r}")

        iteration = 0
        while True:
            status = ScanStatus.from_dict(self.get_project_status(project_id))
            if status.finished:
                logger.info("Scan of project %s finished", project_id)
                return status
            if max_wait is not None and iteration * poll_interval >= max_wait:
                raise ScanTimeoutError(
                    f"Scan of project {project_id} did not finish within {max_wait} seconds"
                )
            logger.info("Scan of project %s: phase %s, %s%%", project_id, status.phase, status.percent)
            if cancel is None:
                time.sleep(poll_interval)
            elif cancel.wait(poll_interval):
                raise PollCancelledError(f"Waiting for project {project_id} was cancelled")
            iteration += 1

    # ---------- Projects ----------
    def get_projects(self, data: Params = None) -> Any:
        return self._get(self._url("projects"), data)

    def get_projects_by_status(self) -> Any:
        return self._get(self._url("projects", "by", "status"))

    def delete_projects(self, data: Params = None) -> Any:
        return self._delete(self._url("projects"), data)

    def add_project(self, data: Mapping[str, Any]) -> Any:
        """Create a project; a ``source`` entry is the path of an archive to upload."""
        data = dict(data)
        source = data.get("source")
        if source is not None and not isinstance(source, FileUpload):
            data["source"] = FileUpload(str(source))
        return self._post(self._url("project"), data)

    def get_project(self, pid: int) -> Any:
        return self._get(self._url("project", int(pid)))

    def update_project(self, pid: int, data: Params = None) -> Any:
        return self._post(self._url("project", int(pid)), data)

    def delete_project(self, pid: int) -> Any:
        return self._delete(self._url("project", int(pid)))

    def get_project_status(self, pid: int) -> Any:
        return self._get(self._url("project", int(pid), "status"))

    def get_project_trend(self, pid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "trend"), data)

    def get_project_report(self, pid: int, data: Params = None) -> bytes:
        """PDF report of a project as raw bytes."""
        return self._get(self._url("project", int(pid), "report"), data, raw=True)

    # ---------- Files and functions ----------
    def get_project_filenames(self, pid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "filenames"), data)

    def get_project_filename(self, pid: int, fid: int) -> Any:
        return self._get(self._url("project", int(pid), "filename", int(fid)))

    def get_project_functions(self, pid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "functions"), data)

    def get_project_function(self, pid: int, fid: int) -> Any:
        return self._get(self._url("project", int(pid), "function", int(fid)))

    # ---------- Issue details across a project ----------
    def get_project_issues_comments(self, pid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "issues", "comments"), data)

    def get_project_issues_comment(self, pid: int, cid: int) -> Any:
        return self._get(self._url("project", int(pid), "issues", "comment", int(cid)))

    def get_project_issues_lines(self, pid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "issues", "lines"), data)

    def get_project_issues_line(self, pid: int, lid: int) -> Any:
        return self._get(self._url("project", int(pid), "issues", "line", int(lid)))

    def get_project_issues_strings(self, pid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "issues", "strings"), data)

    def get_project_issues_string(self, pid: int, sid: int) -> Any:
        return self._get(self._url("project", int(pid), "issues", "string", int(sid)))

    # ---------- Issues ----------
    def get_project_issues_by_types(self, pid: int) -> Any:
        return self._get(self._url("project", int(pid), "issues", "by", "types"))

    def get_project_issues_by_type(self, pid: int, tid: int) -> Any:
        return self._get(self._url("project", int(pid), "issues", "by", "type", int(tid)))

    def get_project_issues_by_filenames(self, pid: int) -> Any:
        return self._get(self._url("project", int(pid), "issues", "by", "filenames"))

    def get_project_issues_by_filename(self, pid: int, fid: int) -> Any:
        return self._get(self._url("project", int(pid), "issues", "by", "filename", int(fid)))

    def get_project_issues(self, pid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "issues"), data)

    def delete_project_issues(self, pid: int, data: Params = None) -> Any:
        return self._delete(self._url("project", int(pid), "issues"), data)

    def get_project_issue(self, pid: int, iid: int) -> Any:
        return self._get(self._url("project", int(pid), "issue", int(iid)))

    def update_project_issue(self, pid: int, iid: int, data: Params = None) -> Any:
        return self._post(self._url("project", int(pid), "issue", int(iid)), data)

    def delete_project_issue(self, pid: int, iid: int) -> Any:
        return self._delete(self._url("project", int(pid), "issue", int(iid)))

    def get_project_issue_comments(self, pid: int, iid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "issue", int(iid), "comments"), data)

    def get_project_issue_lines(self, pid: int, iid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "issue", int(iid), "lines"), data)

    def get_project_issue_strings(self, pid: int, iid: int, data: Params = None) -> Any:
        return self._get(self._url("project", int(pid), "issue", int(iid), "strings"), data)

    # ---------- Issue types ----------
    def get_issue_types(self) -> Any:
        return self._get(self._url("issues", "types"))

    def get_issue_type(self, tid: int) -> Any:
        return self._get(self._url("issues", "type", int(tid)))

    # ---------- Users ----------
    def get_users(self, data: Params = None) -> Any:
        return self._get(self._url("users"), data)

    def add_user(self, data: Mapping[str, Any]) -> Any:
        return self._post(self._url("user"), data)

    def get_user(self, uid: int) -> Any:
        return self._get(self._url("user", int(uid)))

    def update_user(self, uid: int, data: Params = None) -> Any:
        return self._post(self._url("user", int(uid)), data)

    def delete_user(self, uid: int) -> Any:
        return self._delete(self._url("user", int(uid)))

    def send_user_email(self, uid: int, email_type: str, data: Params = None) -> Any:
        return self._post(self._url("user", int(uid), "email", quote(str(email_type), safe="")), data)

    # ---------- Logs ----------
    def get_error_logs(self, data: Params = None) -> Any:
        return self._get(self._url("logs", "errors"), data)

    def delete_error_logs(self, data: Params = None) -> Any:
        return self._delete(self._url("logs", "errors"), data)

    def get_info_logs(self, data: Params = None) -> Any:
        return self._get(self._url("logs", "infos"), data)

    def delete_info_logs(self, data: Params = None) -> Any:
        return self._delete(self._url("logs", "infos"), data)

    def get_scan_logs(self, data: Params = None) -> Any:
        return self._get(self._url("logs", "scans"), data)

    def delete_scan_logs(self, data: Params = None) -> Any:
        return self._delete(self._url("logs", "scans"), data)
