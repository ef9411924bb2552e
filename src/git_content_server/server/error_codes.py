"""
Error code registry for the content server.

Every error-level log line carries a code in the format
{SUBSYSTEM}-{CATEGORY}-{NUMBER}, e.g. CONTENT-GIT-001. The registry maps
each code to a description, a severity and the operator action.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class Severity(Enum):
    """Severity level of a registered error code."""

    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorDefinition:
    """Definition of a single error code."""

    code: str
    description: str
    severity: Severity
    action: str


ERROR_CODE_PATTERN = re.compile(r"^[A-Z]+-[A-Z]+-\d{3}$")


def validate_error_code_format(code: str) -> bool:
    """
    Check that an error code matches {SUBSYSTEM}-{CATEGORY}-{NUMBER}.

    Examples:
        >>> validate_error_code_format("CONTENT-GIT-001")
        True
        >>> validate_error_code_format("content-git-1")
        False
    """
    return bool(code) and ERROR_CODE_PATTERN.match(code) is not None


def _define(code: str, description: str, severity: Severity, action: str) -> ErrorDefinition:
    return ErrorDefinition(code=code, description=description, severity=severity, action=action)


ERROR_REGISTRY: Dict[str, ErrorDefinition] = {
    definition.code: definition
    for definition in (
        _define(
            "CONTENT-PATH-001",
            "Path rejected because it escapes the content root",
            Severity.WARNING,
            "Inspect the client sending the request; the path was never touched",
        ),
        _define(
            "CONTENT-FS-001",
            "Failed to write file in the working tree",
            Severity.ERROR,
            "Check filesystem permissions and free disk space under the content root",
        ),
        _define(
            "CONTENT-FS-002",
            "Failed to delete file in the working tree",
            Severity.ERROR,
            "Check filesystem permissions under the content root",
        ),
        _define(
            "CONTENT-UPLOAD-001",
            "Failed to write upload into the staging area",
            Severity.ERROR,
            "Check that the staging directory exists and is writable",
        ),
        _define(
            "CONTENT-UPLOAD-002",
            "Failed to relocate staged upload to its destination",
            Severity.ERROR,
            "The upload remains in the staging area; move it manually or retry",
        ),
        _define(
            "CONTENT-UPLOAD-003",
            "Upload rejected because it exceeds the configured size limit",
            Severity.WARNING,
            "Raise upload_config.max_upload_size_bytes if the upload is legitimate",
        ),
        _define(
            "CONTENT-GIT-001",
            "Git command failed",
            Severity.ERROR,
            "Inspect git stderr; the repository may be locked, conflicted or misconfigured",
        ),
        _define(
            "CONTENT-GIT-002",
            "Git command timed out",
            Severity.ERROR,
            "Check for stale index.lock files or raise git_timeouts_config.git_command_timeout",
        ),
        _define(
            "CONTENT-GIT-003",
            "Commit failed after the working tree was mutated",
            Severity.WARNING,
            "Working tree is dirty; retry the commit or reset the affected files",
        ),
        _define(
            "CONTENT-GIT-004",
            "Reset discarded only the first of several requested files",
            Severity.WARNING,
            "Use the reset-all operation to discard every listed file",
        ),
        _define(
            "CONTENT-GIT-005",
            "Failed to unstage paths after a refused commit",
            Severity.ERROR,
            "Run git reset -- <paths> in the working tree before the next commit",
        ),
        _define(
            "CONTENT-SHOW-001",
            "Requested file has no committed content at HEAD",
            Severity.WARNING,
            "Commit the file before reading it at HEAD",
        ),
        _define(
            "CONTENT-CONFIG-001",
            "Invalid environment variable override ignored",
            Severity.WARNING,
            "Fix the environment variable value",
        ),
    )
}


def get_error_definition(code: str) -> Optional[ErrorDefinition]:
    """Look up an error definition, returning None for unknown codes."""
    return ERROR_REGISTRY.get(code)
