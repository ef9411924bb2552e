"""
Unit tests for error_codes module.

Tests the error code registry system including:
- ErrorDefinition dataclass structure
- Error code format validation
- Registry lookup functionality
- Every code logged by the server is registered
"""

import re
from dataclasses import fields
from pathlib import Path

import pytest


def test_error_definition_structure():
    """Test that ErrorDefinition dataclass has required fields."""
    from git_content_server.server.error_codes import ErrorDefinition, Severity

    error_def = ErrorDefinition(
        code="CONTENT-TEST-001",
        description="Test error",
        severity=Severity.ERROR,
        action="Test action",
    )

    assert error_def.code == "CONTENT-TEST-001"
    assert error_def.severity == Severity.ERROR

    field_names = {f.name for f in fields(ErrorDefinition)}
    assert field_names == {"code", "description", "severity", "action"}


def test_error_definition_is_frozen():
    from dataclasses import FrozenInstanceError

    from git_content_server.server.error_codes import ErrorDefinition, Severity

    error_def = ErrorDefinition("CONTENT-TEST-001", "d", Severity.WARNING, "a")

    with pytest.raises(FrozenInstanceError):
        error_def.code = "OTHER-TEST-001"


@pytest.mark.parametrize(
    "code, valid",
    [
        ("CONTENT-GIT-001", True),
        ("CONTENT-UPLOAD-003", True),
        ("content-git-001", False),
        ("CONTENT-GIT-1", False),
        ("CONTENTGIT001", False),
        ("", False),
    ],
)
def test_validate_error_code_format(code, valid):
    from git_content_server.server.error_codes import validate_error_code_format

    assert validate_error_code_format(code) is valid


def test_registry_entries_are_well_formed():
    from git_content_server.server.error_codes import ERROR_REGISTRY, validate_error_code_format

    assert ERROR_REGISTRY
    for code, definition in ERROR_REGISTRY.items():
        assert code == definition.code
        assert validate_error_code_format(code)
        assert definition.description
        assert definition.action


def test_get_error_definition():
    from git_content_server.server.error_codes import Severity, get_error_definition

    definition = get_error_definition("CONTENT-GIT-002")
    assert definition is not None
    assert definition.severity == Severity.ERROR

    assert get_error_definition("CONTENT-NOPE-999") is None


def test_every_logged_code_is_registered():
    """Scan the package source for error codes and check each one is registered."""
    import git_content_server
    from git_content_server.server.error_codes import ERROR_REGISTRY

    package_dir = Path(git_content_server.__file__).parent
    code_pattern = re.compile(r'"(CONTENT-[A-Z]+-\d{3})"')

    used = set()
    for source in package_dir.rglob("*.py"):
        if source.name == "error_codes.py":
            continue
        used.update(code_pattern.findall(source.read_text()))

    assert used
    assert used <= set(ERROR_REGISTRY)
