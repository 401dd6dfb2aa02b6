"""
Validation utilities.

Shared validation utilities for common input validation tasks.
"""

import mimetypes
import re
from pathlib import Path
from typing import Union

from shared.errors import ValidationError
from shared.models.script import ScriptData

VIDEO_EXTENSIONS = {".mp4", ".mov", ".mkv", ".webm", ".avi", ".m4v"}

_PROJECT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]{0,63}$")


def validate_video_file(
    path: Union[str, Path],
    max_size_mb: int = 4096
) -> Path:
    """
    Validate a video file on disk.

    Args:
        path: Path to the video file
        max_size_mb: Maximum file size in MB

    Returns:
        Resolved Path

    Raises:
        ValidationError: If file is invalid
    """
    if not path:
        raise ValidationError("Video file is required")

    file_path = Path(path)
    if not file_path.is_file():
        raise ValidationError(f"Video file not found: {file_path}")

    file_size = file_path.stat().st_size
    if file_size == 0:
        raise ValidationError("File is empty")

    max_size_bytes = max_size_mb * 1024 * 1024
    if file_size > max_size_bytes:
        raise ValidationError(
            f"File size ({file_size / (1024 * 1024):.2f} MB) exceeds maximum "
            f"of {max_size_mb} MB"
        )

    is_valid_video = file_path.suffix.lower() in VIDEO_EXTENSIONS
    if not is_valid_video:
        mime_type, _ = mimetypes.guess_type(file_path.name)
        is_valid_video = bool(mime_type and mime_type.startswith("video/"))

    if not is_valid_video:
        raise ValidationError(
            "Invalid video file format. Supported formats: MP4, MOV, MKV, WEBM, AVI"
        )

    return file_path


def validate_project_id(project_id: str) -> None:
    """
    Validate a project ID.

    Raises:
        ValidationError: If the ID is empty or contains unsupported characters
    """
    if not project_id:
        raise ValidationError("Project ID is required")

    if not isinstance(project_id, str) or not _PROJECT_ID_PATTERN.match(project_id):
        raise ValidationError(
            "Project ID must be 1-64 characters of letters, digits, '-' or '_'"
        )


def validate_script(script: ScriptData) -> None:
    """
    Validate a script before it is used downstream.

    Raises:
        ValidationError: If the script has no usable segment
    """
    if script is None:
        raise ValidationError("Script is required")

    if not script.segments:
        raise ValidationError("Script must have at least one segment")

    if not any(segment.content.strip() for segment in script.segments):
        raise ValidationError("Script segments are all empty")
