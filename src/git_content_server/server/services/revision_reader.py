"""Revision Reader: file content as of the last commit (HEAD)."""

import logging

from .git_gateway import RepositoryGateway
from .path_resolver import PathResolver

logger = logging.getLogger(__name__)


class RevisionReader:
    def __init__(self, resolver: PathResolver, gateway: RepositoryGateway):
        self.resolver = resolver
        self.gateway = gateway

    def read_at_head(self, rel_path: str) -> bytes:
        """
        Return the committed content of a content-root-relative path.

        Uncommitted working-tree changes are ignored.

        Raises:
            PathEscapeError: If rel_path escapes the content root
            ContentNotFoundError: If the path has no committed content at HEAD
            RepositoryError: On other git failures
        """
        absolute_path = self.resolver.resolve(rel_path)
        logger.debug(f"Reading {absolute_path} at HEAD")
        return self.gateway.read_blob(absolute_path)
