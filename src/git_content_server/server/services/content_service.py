"""
Git Content Service.

Composes the mutation pipeline (PathResolver, FileMutator, UploadStager,
CommitCoordinator, ResetCoordinator, RevisionReader) around a single
RepositoryGateway and exposes one method per boundary operation.

The service raises the pipeline exceptions unchanged; translating them
into responses is the router's job.
"""

import logging
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

from ..utils.config_manager import ContentServerConfig
from .commit_coordinator import CommitCoordinator
from .exceptions import RepositoryError
from .file_mutator import FileMutator
from .git_gateway import GitRepositoryGateway, RepositoryGateway
from .models import (
    CommitRecord,
    MutationOperation,
    MutationRequest,
    RelocationResult,
    ResetResult,
    UploadedFile,
)
from .path_resolver import PathResolver
from .reset_coordinator import ResetCoordinator
from .revision_reader import RevisionReader
from .upload_stager import UploadStager

logger = logging.getLogger(__name__)


class GitContentService:
    """
    Service for git-backed content editing.

    One instance per process, holding the canonical gateway to the
    working tree. Every component receives its collaborators explicitly,
    so tests can inject a fake gateway.
    """

    def __init__(
        self,
        config: ContentServerConfig,
        gateway: Optional[RepositoryGateway] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Effective server configuration
            gateway: Repository gateway (creates a GitRepositoryGateway if None)
        """
        assert config.git_timeouts_config is not None  # Guaranteed by __post_init__
        assert config.upload_config is not None  # Guaranteed by __post_init__

        self.config = config
        self.gateway = gateway or GitRepositoryGateway(
            config.repo_root, timeout=config.git_timeouts_config.git_command_timeout
        )
        self.resolver = PathResolver(config.content_root)
        self.mutator = FileMutator()
        self.stager = UploadStager(
            config.tmp_dir, max_upload_size_bytes=config.upload_config.max_upload_size_bytes
        )
        self.commit_coordinator = CommitCoordinator(self.gateway)
        self.reset_coordinator = ResetCoordinator(self.gateway)
        self.revision_reader = RevisionReader(self.resolver, self.gateway)

    def delete_file(
        self,
        rel_path: str,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> str:
        """
        Delete a file and commit the deletion.

        The commit message is generated from the configured default message
        and the normalized relative path. If the delete itself fails no
        commit is attempted.

        Returns:
            Commit id of the deletion commit
        """
        absolute_path = self.resolver.resolve(rel_path)
        self.mutator.apply(MutationRequest(absolute_path, MutationOperation.DELETE))

        display_path = self.resolver.relative_to_root(absolute_path)
        record = CommitRecord.with_defaults(
            files=[absolute_path],
            message=f"{self.config.default_commit_message}: delete {display_path}",
            author_name=author_name,
            author_email=author_email,
            default_message=self.config.default_commit_message,
            default_author_name=self.config.default_commit_name,
            default_author_email=self.config.default_commit_email,
        )
        return self.commit_coordinator.commit_record(record)

    def create_file(self, rel_path: str, content: str) -> str:
        """
        Create or overwrite a file. No commit is created.

        Returns:
            The content that was written
        """
        absolute_path = self.resolver.resolve(rel_path)
        self.mutator.apply(
            MutationRequest(absolute_path, MutationOperation.WRITE, content.encode("utf-8"))
        )
        return content

    def receive_upload(
        self,
        original_name: str,
        stream: BinaryIO,
        directory: str = "",
        content_type: Optional[str] = None,
    ) -> Tuple[UploadedFile, RelocationResult]:
        """
        Stage an upload and relocate it into directory under the content root.

        The destination directory is resolved before anything is written,
        so an escaping directory never reaches the staging area.
        """
        destination_dir = self.resolver.resolve_directory(directory)
        uploaded = self.stager.deposit(original_name, stream, content_type=content_type)
        result = self.stager.relocate(
            uploaded.staged_name, destination_dir, uploaded.original_name
        )
        return uploaded, result

    def commit(
        self,
        files: List[str],
        message: Optional[str] = None,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> str:
        """
        Commit already mutated files, filling absent fields from defaults.

        Returns:
            The new commit id
        """
        absolute_paths = self._resolve_all(files)
        record = CommitRecord.with_defaults(
            files=absolute_paths,
            message=message,
            author_name=author_name,
            author_email=author_email,
            default_message=self.config.default_commit_message,
            default_author_name=self.config.default_commit_name,
            default_author_email=self.config.default_commit_email,
        )
        return self.commit_coordinator.commit_record(record)

    def reset(self, files: List[str]) -> ResetResult:
        """Discard uncommitted changes to the first listed file."""
        return self.reset_coordinator.discard(self._resolve_all(files))

    def reset_all(self, files: List[str]) -> ResetResult:
        """Discard uncommitted changes to every listed file."""
        return self.reset_coordinator.discard_all(self._resolve_all(files))

    def show(self, rel_path: str) -> str:
        """Return a file's committed content at HEAD as text."""
        return self.revision_reader.read_at_head(rel_path).decode("utf-8", errors="replace")

    def prepare(self) -> None:
        """Create the staging area; called once at startup."""
        self.stager.ensure_staging_area()

    def health(self) -> Dict[str, Any]:
        """Describe the working tree the service is bound to."""
        try:
            head = self.gateway.head_commit()
        except RepositoryError as e:
            logger.warning(f"Health check could not resolve HEAD: {e}")
            head = None
        return {
            "repository": str(self.config.repo_root),
            "content_root": str(self.config.content_root),
            "head": head,
        }

    def _resolve_all(self, files: List[str]) -> List[Path]:
        return [self.resolver.resolve(rel) for rel in files]
