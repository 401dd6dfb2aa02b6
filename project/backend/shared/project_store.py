"""
Project store.

Synchronous in-memory project records, last write wins.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from shared.errors import ValidationError
from shared.logging import get_logger
from shared.models.script import ScriptData, utc_now
from shared.models.video import VideoAnalysis, VideoInfo

logger = get_logger("project_store")


class ExportRecord(BaseModel):
    id: str
    project_id: str
    format: str = "mp4"
    quality: str = "high"
    resolution: str = "1080p"
    file_path: str
    subtitle_path: Optional[str] = None
    total_clips: int = 0
    duration: float = 0.0
    created_at: str = Field(default_factory=utc_now)


class ProjectRecord(BaseModel):
    id: str
    name: str = ""
    videos: List[VideoInfo] = Field(default_factory=list)
    scripts: List[ScriptData] = Field(default_factory=list)
    analysis: Optional[VideoAnalysis] = None
    exports: List[ExportRecord] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


class ProjectStore:
    """In-memory project persistence."""

    def __init__(self):
        self._records: Dict[str, ProjectRecord] = {}

    def get(self, project_id: str) -> Optional[ProjectRecord]:
        """
        Get a project record.

        Args:
            project_id: Project ID

        Returns:
            A copy of the record, or None if unknown
        """
        record = self._records.get(project_id)
        return record.model_copy(deep=True) if record else None

    def save(self, record: ProjectRecord) -> None:
        """
        Save a project record, replacing any previous version.

        Args:
            record: Record to store
        """
        if not record.id:
            raise ValidationError("Project record requires an id")
        stored = record.model_copy(deep=True)
        stored.updated_at = utc_now()
        self._records[record.id] = stored
        logger.debug("Project saved", extra={"project_id": record.id})

    def create(self, project_id: str, name: str = "") -> ProjectRecord:
        """Create (or overwrite) an empty project record."""
        record = ProjectRecord(id=project_id, name=name or project_id)
        self.save(record)
        return self.get(project_id)

    def list(self) -> List[ProjectRecord]:
        return [r.model_copy(deep=True) for r in self._records.values()]
