"""
Tests for pull request file listing.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from az_costguard.config.loader import ConfigError
from az_costguard.github.pull_request import (
    PER_PAGE,
    ChangedFile,
    GitHubContext,
    list_changed_files,
    read_pull_request_number,
)

ENV = {
    "GITHUB_REPOSITORY": "contoso/infra",
    "GITHUB_TOKEN": "ghs_token",
    "GITHUB_EVENT_PATH": "/tmp/event.json",
}


def _response(items):
    response = MagicMock()
    response.json.return_value = items
    response.raise_for_status.return_value = None
    return response


def _files(count, prefix="f"):
    return [{"filename": f"{prefix}{i}.bicep", "status": "modified"} for i in range(count)]


class TestGitHubContext:
    """Test reading the Actions environment."""

    def test_from_env(self):
        context = GitHubContext.from_env(ENV)

        assert context.owner == "contoso"
        assert context.repo == "infra"
        assert context.token == "ghs_token"
        assert context.event_path == "/tmp/event.json"
        assert context.api_url == "https://api.github.com"

    def test_enterprise_api_url(self):
        env = dict(ENV, GITHUB_API_URL="https://ghe.example.com/api/v3")
        assert GitHubContext.from_env(env).api_url == "https://ghe.example.com/api/v3"

    @pytest.mark.parametrize("missing", ["GITHUB_REPOSITORY", "GITHUB_TOKEN", "GITHUB_EVENT_PATH"])
    def test_missing_variable(self, missing):
        env = {k: v for k, v in ENV.items() if k != missing}
        with pytest.raises(ConfigError, match=missing):
            GitHubContext.from_env(env)

    @pytest.mark.parametrize("repository", ["contoso", "contoso/infra/extra", "/infra"])
    def test_invalid_repository(self, repository):
        env = dict(ENV, GITHUB_REPOSITORY=repository)
        with pytest.raises(ConfigError, match="Invalid GITHUB_REPOSITORY format"):
            GitHubContext.from_env(env)


class TestReadPullRequestNumber:
    """Test event payload parsing."""

    def test_reads_number(self, tmp_path):
        event = tmp_path / "event.json"
        event.write_text(json.dumps({"pull_request": {"number": 42}}), encoding="utf-8")

        assert read_pull_request_number(str(event)) == 42

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="does not exist"):
            read_pull_request_number(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        event = tmp_path / "event.json"
        event.write_text("{", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid JSON"):
            read_pull_request_number(str(event))

    @pytest.mark.parametrize("payload", [
        {"push": {}},
        {"pull_request": {}},
        {"pull_request": {"number": "42"}},
        [],
    ])
    def test_not_a_pull_request(self, tmp_path, payload):
        event = tmp_path / "event.json"
        event.write_text(json.dumps(payload), encoding="utf-8")

        with pytest.raises(ConfigError, match="not a pull request event"):
            read_pull_request_number(str(event))


class TestListChangedFiles:
    """Test changed file pagination."""

    def setup_method(self):
        self.context = GitHubContext.from_env(ENV)

    def test_single_page(self):
        session = MagicMock()
        session.get.return_value = _response(_files(2))

        files = list_changed_files(self.context, 7, session=session)

        assert files == [
            ChangedFile(filename="f0.bicep", status="modified"),
            ChangedFile(filename="f1.bicep", status="modified"),
        ]
        session.get.assert_called_once()
        args, kwargs = session.get.call_args
        assert args[0] == "https://api.github.com/repos/contoso/infra/pulls/7/files"
        assert kwargs["params"] == {"per_page": PER_PAGE, "page": 1}
        assert kwargs["headers"]["Authorization"] == "Bearer ghs_token"

    def test_follows_pagination(self):
        session = MagicMock()
        session.get.side_effect = [
            _response(_files(PER_PAGE, "a")),
            _response(_files(3, "b")),
        ]

        files = list_changed_files(self.context, 7, session=session)

        assert len(files) == PER_PAGE + 3
        assert files[0].filename == "a0.bicep"
        assert files[-1].filename == "b2.bicep"
        pages = [call.kwargs["params"]["page"] for call in session.get.call_args_list]
        assert pages == [1, 2]

    def test_full_last_page_fetches_empty_page(self):
        session = MagicMock()
        session.get.side_effect = [_response(_files(PER_PAGE)), _response([])]

        files = list_changed_files(self.context, 7, session=session)

        assert len(files) == PER_PAGE
        assert session.get.call_count == 2

    def test_http_error_propagates(self):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        session = MagicMock()
        session.get.return_value = response

        with pytest.raises(requests.HTTPError):
            list_changed_files(self.context, 7, session=session)
