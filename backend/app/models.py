from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(String(200))
    body: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(16), default="ready")  # processing|ready|failed
    error: Mapped[str] = mapped_column(Text, default="")

    # Attachment reference returned by the remote storage adapter
    image_url: Mapped[str] = mapped_column(String(1024), default="")
    image_public_id: Mapped[str] = mapped_column(String(512), default="")
    image_resource_type: Mapped[str] = mapped_column(String(16), default="image")
    image_format: Mapped[str] = mapped_column(String(16), default="")
    image_size_bytes: Mapped[int] = mapped_column(Integer, default=0)
    image_filename: Mapped[str] = mapped_column(String(512), default="")

    upload_set: Mapped[str] = mapped_column(String(32), default="images")
    storage_backend: Mapped[str] = mapped_column(String(16), default="local")
    # Local cache copy; cleared after handoff unless keep_cached_uploads is set
    cached_path: Mapped[str] = mapped_column(String(1024), default="")

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class HandoffJob(Base):
    __tablename__ = "handoff_jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("posts.id"), index=True)
    status: Mapped[str] = mapped_column(String(16), default="queued")  # queued|running|succeeded|failed
    progress: Mapped[int] = mapped_column(Integer, default=0)
    error: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
