"""
Infrastructure-as-code file selection.

Picks the Bicep, Terraform and ARM template files out of a pull
request's changed files.
"""

from pathlib import PurePosixPath
from typing import Iterable, List, Optional

BICEP = "Bicep"
TERRAFORM = "Terraform"
ARM = "ARM/JSON"

_ARM_NAME_PATTERNS = ("template", "azuredeploy", "maintemplate", "nested", "linked")
_ARM_DIRECTORIES = ("/templates/", "/arm/", "/bicep/", "/infrastructure/")

_EXCLUDED_DIRECTORIES = (
    "/.github/", "/node_modules/", "/.terraform/",
    "/bin/", "/obj/", "/Debug/", "/Release/",
)
_EXCLUDED_FRAGMENTS = (".sourcelink.json", ".pdb")
_EXCLUDED_PREFIX = "mocked-"


def is_arm_template(path: str) -> bool:
    """Heuristically detect an ARM template among JSON files."""
    if not path.endswith(".json"):
        return False

    stem = PurePosixPath(path).stem.lower()
    if any(pattern in stem for pattern in _ARM_NAME_PATTERNS):
        return True
    return any(directory in path for directory in _ARM_DIRECTORIES)


def iac_file_type(path: str) -> Optional[str]:
    """Return the IaC flavour of a path, or None for other files."""
    if path.endswith(".bicep"):
        return BICEP
    if path.endswith(".tf"):
        return TERRAFORM
    if is_arm_template(path):
        return ARM
    return None


def _is_excluded(path: str) -> bool:
    if path.startswith(_EXCLUDED_PREFIX):
        return True
    if any(directory in path for directory in _EXCLUDED_DIRECTORIES):
        return True
    return any(fragment in path for fragment in _EXCLUDED_FRAGMENTS)


def is_iac_file(path: str) -> bool:
    return iac_file_type(path) is not None and not _is_excluded(path)


def filter_iac_files(paths: Iterable[str]) -> List[str]:
    """Keep IaC files, preserving input order."""
    return [path for path in paths if is_iac_file(path)]
