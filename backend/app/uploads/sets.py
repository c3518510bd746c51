from __future__ import annotations

import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Container, Iterable

from werkzeug.utils import secure_filename

from app.config import Settings, get_settings
from app.errors import EmptyUpload, UnknownUploadSet, UploadNotAllowed, UploadTooLarge
from app.uploads.extensions import DATA, DEFAULTS, DOCUMENTS, IMAGES, TEXT, extension, lowercase_ext, parse_extensions


log = logging.getLogger("mediarelay.uploads")

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class CachedFile:
    upload_set: str
    filename: str  # relative to the upload set destination
    path: str
    original_filename: str
    size_bytes: int
    content_type: str
    extension: str


class UploadSet:
    """
    A named group of allowed file extensions with its own cache directory.

    Files saved through a set land in ``destination`` and stay there until the
    remote handoff picks them up (see app.services.handoff).
    """

    def __init__(
        self,
        name: str,
        destination: str | os.PathLike[str],
        extensions: Container[str] = DEFAULTS,
        allow: Iterable[str] = (),
        deny: Iterable[str] = (),
        resource_type: str = "auto",
    ):
        if not name.isalnum():
            raise ValueError("Upload set name must be alphanumeric")
        self.name = name
        self.destination = Path(destination)
        self.extensions = extensions
        self.allow = tuple(allow)
        self.deny = tuple(deny)
        self.resource_type = resource_type

    def __repr__(self) -> str:
        return f"UploadSet({self.name!r}, destination={str(self.destination)!r})"

    def extension_allowed(self, ext: str) -> bool:
        return ext in self.allow or (ext in self.extensions and ext not in self.deny)

    def file_allowed(self, filename: str) -> bool:
        return self.extension_allowed(extension(lowercase_ext(filename)))

    def allowed_extensions(self) -> list[str] | None:
        """Concrete extension list for clients, or None when the set accepts anything."""
        if not isinstance(self.extensions, (tuple, list, set, frozenset)):
            return None
        exts = [e for e in self.extensions if e not in self.deny]
        exts.extend(e for e in self.allow if e not in exts)
        return sorted(exts)

    def path(self, filename: str, folder: str | None = None) -> str:
        target = self.destination / folder / filename if folder else self.destination / filename
        resolved = target.resolve()
        root = self.destination.resolve()
        if resolved != root and root not in resolved.parents:
            raise UploadNotAllowed(f"Path escapes the {self.name} upload directory")
        return str(resolved)

    def resolve_conflict(self, target_folder: str | os.PathLike[str], basename: str) -> str:
        name, ext = os.path.splitext(basename)
        count = 0
        while True:
            count += 1
            candidate = f"{name}_{count}{ext}"
            if not os.path.exists(os.path.join(target_folder, candidate)):
                return candidate

    def save(
        self,
        fileobj: IO[bytes],
        filename: str,
        *,
        folder: str | None = None,
        name: str | None = None,
        content_type: str | None = None,
        max_bytes: int | None = None,
    ) -> CachedFile:
        original = filename or ""
        safe = lowercase_ext(secure_filename(original))
        if not safe:
            raise UploadNotAllowed("Missing or invalid filename")
        if not self.file_allowed(safe):
            raise UploadNotAllowed(f"Files of type '{extension(safe) or '(none)'}' are not allowed in {self.name}")

        ext = extension(safe)
        if name:
            if name.endswith("."):
                base = secure_filename(name[:-1])
                basename = f"{base}.{ext}" if ext else base
            else:
                basename = lowercase_ext(secure_filename(name))
        else:
            basename = safe
        if not basename:
            raise UploadNotAllowed("Missing or invalid filename")

        target_folder = Path(self.path(folder)) if folder else self.destination
        target_folder.mkdir(parents=True, exist_ok=True)
        if (target_folder / basename).exists():
            basename = self.resolve_conflict(target_folder, basename)

        dest = Path(self.path(basename, folder))
        size = 0
        try:
            with open(dest, "wb") as f:
                while True:
                    chunk = fileobj.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if max_bytes is not None and size > max_bytes:
                        raise UploadTooLarge(max_bytes)
                    f.write(chunk)
            if size == 0:
                raise EmptyUpload("Uploaded file is empty")
        except BaseException:
            dest.unlink(missing_ok=True)
            raise

        ctype = content_type or mimetypes.guess_type(basename)[0] or "application/octet-stream"
        rel = f"{folder}/{basename}" if folder else basename
        log.info("upload_cached set=%s filename=%s bytes=%s", self.name, rel, size)
        return CachedFile(
            upload_set=self.name,
            filename=rel,
            path=str(dest),
            original_filename=original,
            size_bytes=size,
            content_type=ctype,
            extension=ext,
        )

    def discard(self, cached: CachedFile | str) -> None:
        path = cached.path if isinstance(cached, CachedFile) else cached
        if not path:
            return
        Path(path).unlink(missing_ok=True)


def _build(settings: Settings) -> dict[str, UploadSet]:
    root = Path(settings.upload_dir)
    return {
        "images": UploadSet(
            "images",
            root / "images",
            extensions=IMAGES,
            allow=parse_extensions(settings.images_allow),
            deny=parse_extensions(settings.images_deny),
            resource_type="image",
        ),
        "documents": UploadSet(
            "documents",
            root / "documents",
            extensions=DOCUMENTS + TEXT + DATA,
            allow=parse_extensions(settings.documents_allow),
            deny=parse_extensions(settings.documents_deny),
            resource_type="raw",
        ),
    }


def get_upload_sets(settings: Settings | None = None) -> dict[str, UploadSet]:
    return _build(settings or get_settings())


def get_upload_set(name: str, settings: Settings | None = None) -> UploadSet:
    sets = get_upload_sets(settings)
    try:
        return sets[name]
    except KeyError:
        raise UnknownUploadSet(name) from None
