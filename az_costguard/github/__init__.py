"""
GitHub integration for AZ Cost Guard.

Reads the pull request event and lists the files it changes.
"""

from .pull_request import (
    ChangedFile,
    GitHubContext,
    list_changed_files,
    read_pull_request_number,
)

__all__ = ["ChangedFile", "GitHubContext", "list_changed_files", "read_pull_request_number"]
