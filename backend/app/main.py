from __future__ import annotations

import logging

from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db import get_db, init_db
from app.errors import RemoteStorageError, UploadError
from app.middleware.logging_filter import configure_logging
from app.middleware.request_id import RequestIdMiddleware
from app.models import Post
from app.schemas import ImageInfo, PostListResponse, PostResponse, UploadSetItem, UploadSetListResponse
from app.services.handoff import delete_post, get_latest_job, receive_upload, run_handoff
from app.uploads import get_upload_set, get_upload_sets


settings = get_settings()
log = configure_logging(settings.log_level)

app = FastAPI(title="mediarelay API", version="0.1.0")

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.storage_backend == "local":
    app.mount(settings.media_url_base, StaticFiles(directory=settings.media_dir), name="media")


@app.on_event("startup")
def _startup() -> None:
    init_db()
    settings.ensure_dirs()
    logging.getLogger("mediarelay").info("startup backend=%s env=%s", settings.storage_backend, settings.app_env)


def _post_out(row: Post, job: dict | None = None) -> PostResponse:
    image = None
    if row.image_url:
        image = ImageInfo(
            url=row.image_url,
            public_id=row.image_public_id,
            filename=row.image_filename or "",
            size_bytes=int(row.image_size_bytes or 0),
            format=row.image_format or "",
            resource_type=row.image_resource_type or "image",
            backend=row.storage_backend or "",
        )
    return PostResponse(
        post_id=row.id,
        title=row.title,
        body=row.body or "",
        status=str(row.status),  # type: ignore[arg-type]
        error=(row.error or None),
        upload_set=row.upload_set,
        image=image,
        job=job,
        created_at=row.created_at.isoformat() if row.created_at else "",
    )


def _get_post(db: Session, post_id: str) -> Post:
    row = db.get(Post, post_id)
    if not row:
        raise HTTPException(status_code=404, detail="Post not found")
    return row


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/api/upload-sets", response_model=UploadSetListResponse)
def list_upload_sets():
    items = [
        UploadSetItem(name=s.name, resource_type=s.resource_type, extensions=s.allowed_extensions())
        for s in get_upload_sets().values()
    ]
    return UploadSetListResponse(items=items)


@app.post("/api/posts", response_model=PostResponse, status_code=201)
def create_post(
    background_tasks: BackgroundTasks,
    title: str = Form(..., min_length=1, max_length=200),
    body: str = Form(""),
    upload_set: str = Form("images"),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename")
    try:
        uset = get_upload_set(upload_set)
        result = receive_upload(
            db,
            upload_set=uset,
            fileobj=file.file,
            filename=file.filename,
            title=title,
            body=body,
            content_type=file.content_type,
        )
    except (UploadError, RemoteStorageError) as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

    if result.queued:
        background_tasks.add_task(run_handoff, result.post.id)
        return _post_out(result.post, job=get_latest_job(db, result.post.id))
    return _post_out(result.post)


@app.get("/api/posts", response_model=PostListResponse)
def list_posts(db: Session = Depends(get_db)):
    rows = db.query(Post).order_by(Post.created_at.desc()).limit(100).all()
    return PostListResponse(items=[_post_out(r) for r in rows])


@app.get("/api/posts/{post_id}", response_model=PostResponse)
def get_post(post_id: str, db: Session = Depends(get_db)):
    row = _get_post(db, post_id)
    job = get_latest_job(db, post_id) if str(row.status) != "ready" else None
    return _post_out(row, job=job)


@app.get("/api/posts/{post_id}/image")
def post_image(post_id: str, db: Session = Depends(get_db)):
    row = _get_post(db, post_id)
    if str(row.status) != "ready" or not row.image_url:
        raise HTTPException(status_code=409, detail=f"Upload is {row.status}")
    return RedirectResponse(row.image_url, status_code=307)


@app.delete("/api/posts/{post_id}")
def remove_post(post_id: str, db: Session = Depends(get_db)):
    row = _get_post(db, post_id)
    delete_post(db, row)
    return {"ok": True}
