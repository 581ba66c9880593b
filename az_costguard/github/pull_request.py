"""
Pull request changed-file listing.

Reads the pull request number from the GitHub Actions event payload and
pages through the REST API's list of changed files.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

import requests

from az_costguard.config.loader import ConfigError

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
PER_PAGE = 100
REQUEST_TIMEOUT_SECONDS = 30
USER_AGENT = "AzureCostGuard"


@dataclass(frozen=True)
class GitHubContext:
    """Repository, token and event payload of the running workflow."""
    owner: str
    repo: str
    token: str
    event_path: str
    api_url: str = GITHUB_API_URL

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "GitHubContext":
        """Read the GitHub Actions environment.

        Raises:
            ConfigError: If a variable is missing or malformed
        """
        env = os.environ if env is None else env

        repository = env.get("GITHUB_REPOSITORY", "").strip()
        if not repository:
            raise ConfigError("GITHUB_REPOSITORY environment variable is not set")
        parts = repository.split("/")
        if len(parts) != 2 or not all(parts):
            raise ConfigError(
                f"Invalid GITHUB_REPOSITORY format. Expected 'owner/repo', got '{repository}'"
            )

        token = env.get("GITHUB_TOKEN", "").strip()
        if not token:
            raise ConfigError("GITHUB_TOKEN environment variable is not set")

        event_path = env.get("GITHUB_EVENT_PATH", "").strip()
        if not event_path:
            raise ConfigError("GITHUB_EVENT_PATH environment variable is not set")

        return cls(
            owner=parts[0],
            repo=parts[1],
            token=token,
            event_path=event_path,
            api_url=env.get("GITHUB_API_URL", "").strip() or GITHUB_API_URL,
        )


@dataclass(frozen=True)
class ChangedFile:
    """A file touched by the pull request."""
    filename: str
    status: str


def read_pull_request_number(event_path: str) -> int:
    """Extract `pull_request.number` from the workflow event payload.

    Raises:
        ConfigError: If the payload is missing or not a pull request event
    """
    path = Path(event_path)
    if not path.exists():
        raise ConfigError(f"GitHub event file does not exist at path: {event_path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            event = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in GitHub event file {event_path}: {e}")

    pull_request = event.get("pull_request") if isinstance(event, dict) else None
    number = pull_request.get("number") if isinstance(pull_request, dict) else None
    if isinstance(number, bool) or not isinstance(number, int):
        raise ConfigError("GitHub event is not a pull request event")
    return number


def list_changed_files(
    context: GitHubContext,
    number: int,
    session: Optional[requests.Session] = None
) -> List[ChangedFile]:
    """List every file changed by a pull request, following pagination.

    Args:
        context: Repository and credentials
        number: Pull request number
        session: Optional requests session (a new one is used otherwise)

    Returns:
        Changed files in API order

    Raises:
        requests.HTTPError: If the API rejects a request
    """
    session = session or requests.Session()
    url = f"{context.api_url}/repos/{context.owner}/{context.repo}/pulls/{number}/files"
    headers = {
        "Authorization": f"Bearer {context.token}",
        "Accept": "application/vnd.github+json",
        "User-Agent": USER_AGENT,
    }

    files: List[ChangedFile] = []
    page = 1
    while True:
        response = session.get(
            url,
            headers=headers,
            params={"per_page": PER_PAGE, "page": page},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        items = response.json()
        files.extend(
            ChangedFile(filename=item["filename"], status=item.get("status", ""))
            for item in items
        )
        logger.debug("Fetched page %d with %d files", page, len(items))
        if len(items) < PER_PAGE:
            break
        page += 1

    return files
