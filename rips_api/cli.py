"""Example program: upload a source archive, wait for the scan, print its issues."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .client import Client
from .config import load_client_config
from .errors import NotAuthorizedError, RipsError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = os.path.join("config", "rips.yaml")


def get_project_by_name(client: Client, name: str) -> Optional[Dict[str, Any]]:
    for project in client.get_projects() or []:
        if project.get("name") == name:
            return project
    return None


def scan(client: Client, archive: str, max_wait: Optional[float] = None) -> List[Dict[str, Any]]:
    name = os.path.splitext(os.path.basename(archive))[0]
    project = get_project_by_name(client, name)
    if project is None:
        logger.info("Uploading project %s", name)
        project = client.add_project({"name": name, "source": archive})
        logger.info("Upload complete")
    else:
        logger.info("Project %s already exists", name)

    project_id = int(project["projectId"])
    client.block_until_finished(project_id, max_wait=max_wait)

    issues = client.get_project_issues(project_id) or []
    for issue in issues:
        # typeId/fileId are numeric references, resolve them for readability
        issue["type"] = client.get_issue_type(issue["typeId"])
        issue["file"] = client.get_project_filename(project_id, issue["fileId"])
    return issues


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Upload a source archive to RIPS, wait for the scan and print the issues as JSON."
    )
    parser.add_argument("user", nargs="?", help="RIPS user name (default: RIPS_USERNAME or config)")
    parser.add_argument("password", nargs="?", help="RIPS password (default: RIPS_PASSWORD or config)")
    parser.add_argument("file", help="Path to the source archive (zip)")
    parser.add_argument("--config", required=False, default=None,
                        help=f"Path to a YAML config with a 'rips' section. Defaults to {DEFAULT_CONFIG} if present.")
    parser.add_argument("--server", required=False, help="API server, overrides config and RIPS_API_URL.")
    parser.add_argument("--max_wait", required=False, type=float,
                        help="Give up if the scan is not finished after this many seconds.")
    parser.add_argument("--log_level", required=False, default="INFO", help="Logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    load_dotenv()

    config_path = args.config or (DEFAULT_CONFIG if os.path.isfile(DEFAULT_CONFIG) else None)
    cfg = load_client_config(config_path)
    if args.server:
        cfg.url = args.server.rstrip("/")

    if args.user:
        credentials = {"name": args.user, "password": args.password or cfg.password or ""}
    else:
        credentials = cfg.credentials()
    if credentials is None:
        print("Missing credentials: pass user and password or set RIPS_USERNAME/RIPS_PASSWORD", file=sys.stderr)
        return 1
    if not os.path.isfile(args.file):
        print(f"Archive not found: {args.file}", file=sys.stderr)
        return 1

    with Client.from_config(cfg) as client:
        try:
            client.login(credentials)
        except NotAuthorizedError:
            print("Invalid login", file=sys.stderr)
            return 1
        except RipsError as exc:
            logger.debug("Login failed: %s", exc)
            print("Could not connect", file=sys.stderr)
            return 1

        issues = scan(client, args.file, max_wait=args.max_wait)
        print(json.dumps(issues, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
