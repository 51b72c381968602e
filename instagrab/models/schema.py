"""SQLAlchemy ORM models for InstaGrab."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class JobStatus(str, Enum):
    """Download job lifecycle: pending -> processing -> completed | failed."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def _new_id() -> str:
    return str(uuid.uuid4())


class DownloadJob(Base):
    """A URL submitted for download and everything learned about it."""

    __tablename__ = "downloads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    url: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # post, reel, story, igtv
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JobStatus.PENDING.value, index=True
    )

    # Extraction result, ``metadata`` is reserved on declarative classes
    media_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON)
    error: Mapped[Optional[str]] = mapped_column(Text)

    # Local storage
    file_path: Mapped[Optional[str]] = mapped_column(Text)
    file_size: Mapped[Optional[int]] = mapped_column(Integer)
    downloaded_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the field names the job API exposes."""
        return {
            "id": self.id,
            "url": self.url,
            "type": self.type,
            "status": self.status,
            "metadata": self.media_metadata,
            "error": self.error,
            "filePath": self.file_path,
            "fileSize": self.file_size,
            "downloadedAt": self.downloaded_at.isoformat() if self.downloaded_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<DownloadJob(id='{self.id}', type='{self.type}', status='{self.status}')>"
