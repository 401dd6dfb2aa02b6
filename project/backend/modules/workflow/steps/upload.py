"""
Upload step.

Validates and imports the source video, then attaches it to its project.
"""

from typing import Any, Callable, Dict, Optional

from shared.config import settings
from shared.logging import get_logger
from shared.project_store import ProjectStore
from shared.validation import validate_project_id, validate_video_file
from modules.workflow.services import MediaBackend

logger = get_logger("workflow.steps.upload")


async def execute_upload_step(
    project_id: str,
    video_path: str,
    media_backend: MediaBackend,
    project_store: ProjectStore,
    on_progress: Callable[[int], None],
    max_size_mb: Optional[int] = None
) -> Dict[str, Any]:
    """
    Import a video into a project.

    Args:
        project_id: Target project
        video_path: Path of the source video
        media_backend: Backend performing the import
        project_store: Project persistence
        on_progress: Overall progress callback (0-100)
        max_size_mb: Upload size limit (settings.max_upload_size_mb when None)

    Returns:
        Data delta with project_id and video_info

    Raises:
        ValidationError: If the project ID or video file is invalid
    """
    validate_project_id(project_id)
    path = validate_video_file(video_path, max_size_mb or settings.max_upload_size_mb)

    logger.info(f"Importing video {path.name}", extra={"project_id": project_id})
    video_info = await media_backend.import_video(
        str(path),
        lambda fraction: on_progress(int(5 + fraction * 10))
    )

    project = project_store.get(project_id) or project_store.create(project_id)
    project.videos.append(video_info)
    project_store.save(project)

    logger.info(
        "Video imported",
        extra={"project_id": project_id, "video_id": video_info.id, "duration": video_info.duration}
    )
    return {"project_id": project_id, "video_info": video_info}
