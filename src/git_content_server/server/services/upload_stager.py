"""
Upload Stager.

Two halves of the upload flow:
- deposit(): the transport side, streams an incoming upload into the
  staging area under a collision-resistant name.
- relocate(): moves a staged file to its final location inside the
  content root and reports the outcome as a RelocationResult.

Staging never commits; callers decide whether an upload is committed.
"""

import logging
import os
import threading
import uuid
from pathlib import Path
from typing import BinaryIO, List, Optional

from ..logging_utils import format_error_log, get_log_extra
from .exceptions import FileOperationError, UploadTooLargeError
from .models import RelocationResult, UploadedFile

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024
RELOCATION_LOCK_STRIPES = 64


def sanitize_upload_name(original_name: Optional[str]) -> str:
    """
    Reduce a client-supplied filename to a bare basename.

    Raises:
        ValueError: If nothing usable remains
    """
    name = (original_name or "").replace("\\", "/").split("/")[-1].strip()
    if name in ("", ".", "..") or "\x00" in name:
        raise ValueError(f"Invalid upload filename: {original_name!r}")
    return name


class UploadStager:
    """
    Relocates uploads from the shared staging area to the repository tree.

    Relocation is serialized per destination path so two uploads targeting
    the same final filename cannot interleave. Destinations share a fixed
    pool of locks selected by hash, so memory use does not grow with the
    number of distinct destinations.
    """

    def __init__(self, staging_dir: Path, max_upload_size_bytes: Optional[int] = None):
        self.staging_dir = Path(staging_dir)
        self.max_upload_size_bytes = max_upload_size_bytes
        self._relocation_locks: List[threading.Lock] = [
            threading.Lock() for _ in range(RELOCATION_LOCK_STRIPES)
        ]

    def ensure_staging_area(self) -> None:
        """Create the staging directory if it does not exist."""
        self.staging_dir.mkdir(parents=True, exist_ok=True)

    def deposit(
        self,
        original_name: str,
        stream: BinaryIO,
        content_type: Optional[str] = None,
    ) -> UploadedFile:
        """
        Write an incoming upload into the staging area.

        The staged name carries a request-unique prefix so concurrent
        uploads of the same filename never collide.

        Raises:
            ValueError: If the filename is unusable
            UploadTooLargeError: If the upload exceeds max_upload_size_bytes
            FileOperationError: If the staging write fails
        """
        safe_name = sanitize_upload_name(original_name)
        temp_path = self.staging_dir / f"{uuid.uuid4().hex}_{safe_name}"

        size = 0
        try:
            self.ensure_staging_area()
            with open(temp_path, "wb") as staged:
                while True:
                    chunk = stream.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if self.max_upload_size_bytes is not None and size > self.max_upload_size_bytes:
                        raise UploadTooLargeError(
                            f"Upload '{safe_name}' exceeds maximum size of "
                            f"{self.max_upload_size_bytes} bytes"
                        )
                    staged.write(chunk)
        except UploadTooLargeError:
            temp_path.unlink(missing_ok=True)
            logger.warning(
                format_error_log("CONTENT-UPLOAD-003", "Upload too large", filename=safe_name),
                extra=get_log_extra("CONTENT-UPLOAD-003"),
            )
            raise
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            logger.error(
                format_error_log(
                    "CONTENT-UPLOAD-001", "Failed to stage upload", filename=safe_name, error=e
                ),
                extra=get_log_extra("CONTENT-UPLOAD-001"),
            )
            raise FileOperationError(f"Failed to stage upload '{safe_name}': {e}") from e

        logger.info(f"Staged upload {safe_name} ({size} bytes) as {temp_path.name}")
        return UploadedFile(
            original_name=safe_name,
            temp_path=temp_path,
            size=size,
            content_type=content_type,
        )

    def relocate(
        self, staged_file_name: str, destination_dir: Path, final_name: str
    ) -> RelocationResult:
        """
        Move a staged file to destination_dir/final_name.

        Failures (missing source, cross-device rename, permissions) do not
        raise: they are logged and returned as an unsuccessful result, and
        the staged file is left in place.

        Args:
            staged_file_name: Name of the file inside the staging area
            destination_dir: Resolved directory inside the content root
            final_name: Filename at the destination

        Returns:
            RelocationResult describing the outcome
        """
        source = self.staging_dir / sanitize_upload_name(staged_file_name)
        destination = Path(destination_dir) / sanitize_upload_name(final_name)

        with self._lock_for(destination):
            try:
                if not source.is_file():
                    raise FileNotFoundError(f"Staged file not found: {source}")
                destination.parent.mkdir(parents=True, exist_ok=True)
                os.replace(str(source), str(destination))
            except OSError as e:
                logger.error(
                    format_error_log(
                        "CONTENT-UPLOAD-002",
                        "Failed to relocate staged upload",
                        source=source,
                        destination=destination,
                        error=e,
                    ),
                    extra=get_log_extra("CONTENT-UPLOAD-002"),
                )
                return RelocationResult(
                    success=False, source=source, destination=destination, error=str(e)
                )

        logger.info(f"Relocated upload {source.name} to {destination}")
        return RelocationResult(success=True, source=source, destination=destination)

    def _lock_for(self, destination: Path) -> threading.Lock:
        return self._relocation_locks[hash(str(destination)) % len(self._relocation_locks)]
