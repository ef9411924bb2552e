"""
Value objects passed between the boundary and the mutation pipeline.

All of these are created per request and consumed immediately; none are
persisted or shared across requests.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class MutationOperation(str, Enum):
    """Filesystem mutation kinds supported by FileMutator."""

    WRITE = "write"
    DELETE = "delete"


@dataclass
class MutationRequest:
    """A single-file filesystem mutation at an already resolved path."""

    absolute_path: Path
    operation: MutationOperation
    content: Optional[bytes] = None

    def __post_init__(self):
        if self.operation == MutationOperation.WRITE and self.content is None:
            raise ValueError("write mutation requires content")


@dataclass
class CommitRecord:
    """
    Everything needed to produce one commit.

    Built by the boundary (with configured author defaults) and consumed
    exactly once by CommitCoordinator.
    """

    message: str
    files: List[Path]
    author_name: Optional[str] = None
    author_email: Optional[str] = None

    def __post_init__(self):
        if not self.files:
            raise ValueError("CommitRecord requires at least one file")

    @classmethod
    def with_defaults(
        cls,
        files: List[Path],
        message: Optional[str],
        author_name: Optional[str],
        author_email: Optional[str],
        default_message: str,
        default_author_name: Optional[str] = None,
        default_author_email: Optional[str] = None,
    ) -> "CommitRecord":
        """Build a record, filling absent fields from configured defaults."""
        return cls(
            message=message or default_message,
            files=list(files),
            author_name=author_name or default_author_name,
            author_email=author_email or default_author_email,
        )


@dataclass
class UploadedFile:
    """
    An upload deposited in the staging area by the transport.

    UploadStager only depends on this shape, never on the web framework's
    upload object.
    """

    original_name: str
    temp_path: Path
    size: int = 0
    content_type: Optional[str] = None

    @property
    def staged_name(self) -> str:
        return self.temp_path.name

    def to_descriptor(self, field_name: str = "file") -> Dict[str, Any]:
        """Describe the upload the way multipart middlewares report files."""
        return {
            "fieldname": field_name,
            "originalname": self.original_name,
            "filename": self.staged_name,
            "destination": str(self.temp_path.parent),
            "path": str(self.temp_path),
            "size": self.size,
            "mimetype": self.content_type,
        }


@dataclass
class RelocationResult:
    """Outcome of moving a staged upload to its final location."""

    success: bool
    source: Path
    destination: Path
    error: Optional[str] = None


@dataclass
class ResetResult:
    """Paths discarded by a reset and paths that were ignored."""

    discarded: List[Path] = field(default_factory=list)
    ignored: List[Path] = field(default_factory=list)
