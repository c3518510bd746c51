from __future__ import annotations

import datetime as dt
import logging
import traceback
import uuid
from dataclasses import dataclass
from typing import IO, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db import SessionLocal
from app.errors import RemoteStorageError
from app.models import HandoffJob, Post
from app.storage import RemoteStorage, get_storage
from app.storage.base import RemoteAsset
from app.uploads import CachedFile, UploadSet, get_upload_set


log = logging.getLogger("mediarelay.handoff")


@dataclass
class HandoffResult:
    post: Post
    queued: bool = False


def receive_upload(
    db: Session,
    *,
    upload_set: UploadSet,
    fileobj: IO[bytes],
    filename: str,
    title: str,
    body: str = "",
    content_type: str | None = None,
    storage: RemoteStorage | None = None,
) -> HandoffResult:
    """
    Upload receiver -> local cache -> remote storage -> persisted reference.

    Small files are handed off inline. Files at or above the async threshold are
    persisted as "processing" with a queued job; the caller schedules run_handoff().
    If the inline handoff fails nothing is persisted and the cached file is dropped.
    """
    settings = get_settings()
    post_id = str(uuid.uuid4())
    cached = upload_set.save(
        fileobj,
        filename,
        name=f"{post_id}.",
        content_type=content_type,
        max_bytes=int(settings.max_upload_bytes),
    )

    if cached.size_bytes >= int(settings.upload_async_threshold_bytes):
        post = Post(
            id=post_id,
            title=title,
            body=body,
            status="processing",
            image_filename=cached.original_filename,
            image_size_bytes=cached.size_bytes,
            upload_set=upload_set.name,
            storage_backend=settings.storage_backend,
            cached_path=cached.path,
        )
        db.add(post)
        db.add(HandoffJob(post_id=post_id, status="queued", progress=0))
        db.commit()
        log.info("handoff_queued post_id=%s bytes=%s", post_id, cached.size_bytes)
        return HandoffResult(post=post, queued=True)

    try:
        storage = storage or get_storage(settings)
        asset = _transmit(storage, upload_set, cached, post_id)
    except RemoteStorageError as e:
        upload_set.discard(cached)
        log.warning("handoff_failed post_id=%s backend=%s error=%s", post_id, settings.storage_backend, e)
        raise

    post = Post(
        id=post_id,
        title=title,
        body=body,
        status="ready",
        image_filename=cached.original_filename,
        image_size_bytes=cached.size_bytes,
        upload_set=upload_set.name,
    )
    _apply_asset(post, asset)
    try:
        db.add(post)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.error("persist_failed post_id=%s public_id=%s", post_id, asset.public_id, exc_info=True)
        try:
            storage.delete(asset.public_id, resource_type=asset.resource_type)
        except RemoteStorageError as e:
            log.warning("remote_delete_failed post_id=%s public_id=%s error=%s", post_id, asset.public_id, e)
        upload_set.discard(cached)
        raise

    if not settings.keep_cached_uploads:
        upload_set.discard(cached)
    else:
        post.cached_path = cached.path
        db.commit()
    log.info("handoff_done post_id=%s backend=%s public_id=%s", post_id, asset.backend, asset.public_id)
    return HandoffResult(post=post)


def run_handoff(post_id: str) -> None:
    """
    Background job entrypoint. Uses its own DB session.
    """
    settings = get_settings()
    db: Session = SessionLocal()
    try:
        post = db.get(Post, post_id)
        if not post:
            log.warning("handoff_skipped post_id=%s reason=post_missing", post_id)
            return
        job = _latest_job(db, post_id)
        if not job:
            job = HandoffJob(post_id=post_id, status="queued", progress=0)
            db.add(job)
            db.commit()

        _set_job(db, job, status="running", progress=10)
        if not post.cached_path:
            _fail(db, post, job, "Cached upload missing")
            return

        upload_set = get_upload_set(post.upload_set)
        cached = CachedFile(
            upload_set=upload_set.name,
            filename=post.cached_path.rsplit("/", 1)[-1],
            path=post.cached_path,
            original_filename=post.image_filename,
            size_bytes=int(post.image_size_bytes or 0),
            content_type="",
            extension=post.cached_path.rsplit(".", 1)[-1] if "." in post.cached_path else "",
        )
        try:
            storage = get_storage(settings)
            _set_job(db, job, status="running", progress=40)
            asset = _transmit(storage, upload_set, cached, post_id)
        except RemoteStorageError as e:
            log.warning("handoff_failed post_id=%s error=%s", post_id, e)
            _fail(db, post, job, str(e))
            return

        _apply_asset(post, asset)
        post.status = "ready"
        post.error = ""
        if not settings.keep_cached_uploads:
            upload_set.discard(cached)
            post.cached_path = ""
        db.commit()
        _set_job(db, job, status="succeeded", progress=100)
        log.info("handoff_done post_id=%s backend=%s public_id=%s", post_id, asset.backend, asset.public_id)
    except Exception:
        err = traceback.format_exc(limit=8)
        log.error("handoff_crashed post_id=%s", post_id, exc_info=True)
        try:
            db.rollback()
            post = db.get(Post, post_id)
            job = _latest_job(db, post_id)
            if post and job:
                _fail(db, post, job, err[:2000])
        except Exception:
            log.error("handoff_recovery_failed post_id=%s", post_id, exc_info=True)
    finally:
        db.close()


def get_latest_job(db: Session, post_id: str) -> dict[str, Any] | None:
    job = _latest_job(db, post_id)
    if not job:
        return None
    return {
        "id": int(job.id),
        "status": str(job.status),
        "progress": int(job.progress or 0),
        "error": str(job.error or ""),
        "updated_at": job.updated_at.isoformat() if job.updated_at else None,
    }


def delete_post(db: Session, post: Post, storage: RemoteStorage | None = None) -> None:
    # remote asset (best-effort)
    if post.image_public_id:
        try:
            storage = storage or get_storage()
            storage.delete(post.image_public_id, resource_type=post.image_resource_type or "image")
        except RemoteStorageError as e:
            log.warning("remote_delete_failed post_id=%s public_id=%s error=%s", post.id, post.image_public_id, e)

    if post.cached_path:
        get_upload_set(post.upload_set).discard(post.cached_path)

    db.query(HandoffJob).filter(HandoffJob.post_id == post.id).delete()
    db.delete(post)
    db.commit()
    log.info("post_deleted post_id=%s", post.id)


def _transmit(storage: RemoteStorage, upload_set: UploadSet, cached: CachedFile, post_id: str) -> RemoteAsset:
    settings = get_settings()
    return storage.upload(
        cached.path,
        public_id=post_id,
        folder=settings.remote_folder or None,
        resource_type=upload_set.resource_type,
        content_type=cached.content_type or None,
    )


def _apply_asset(post: Post, asset: RemoteAsset) -> None:
    post.image_url = asset.url
    post.image_public_id = asset.public_id
    post.image_resource_type = asset.resource_type
    post.image_format = asset.format
    if asset.size_bytes:
        post.image_size_bytes = asset.size_bytes
    post.storage_backend = asset.backend


def _latest_job(db: Session, post_id: str) -> HandoffJob | None:
    return db.query(HandoffJob).filter(HandoffJob.post_id == post_id).order_by(HandoffJob.id.desc()).first()


def _fail(db: Session, post: Post, job: HandoffJob, error: str) -> None:
    post.status = "failed"
    post.error = error
    db.commit()
    _set_job(db, job, status="failed", progress=100, error=error)


def _set_job(db: Session, job: HandoffJob, status: str, progress: int, error: str | None = None) -> None:
    job.status = status
    job.progress = int(progress)
    job.error = str(error or "")
    job.updated_at = dt.datetime.now(dt.timezone.utc)
    db.commit()
