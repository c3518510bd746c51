from __future__ import annotations

from typing import Iterable


TEXT = ("txt",)
DOCUMENTS = tuple("rtf odf ods gnumeric abw doc docx xls xlsx pdf".split())
DATA = tuple("csv ini json plist xml yaml yml".split())
SCRIPTS = tuple("js php pl py rb sh".split())
EXECUTABLES = tuple("so exe dll".split())
ARCHIVES = tuple("gz bz2 zip tar tgz txz 7z".split())
AUDIO = tuple("wav mp3 aac ogg oga flac".split())
IMAGES = tuple("jpg jpe jpeg png gif svg bmp webp".split())

DEFAULTS = TEXT + DOCUMENTS + IMAGES + DATA


class All:
    """Matches every extension."""

    def __contains__(self, item: object) -> bool:
        return True

    def __repr__(self) -> str:
        return "ALL"


ALL = All()


class AllExcept:
    """Matches every extension except the given ones."""

    def __init__(self, items: Iterable[str]):
        self.items = tuple(items)

    def __contains__(self, item: object) -> bool:
        return item not in self.items

    def __repr__(self) -> str:
        return f"AllExcept({self.items!r})"


def extension(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1] if "." in filename else ""
    return ext


def lowercase_ext(filename: str) -> str:
    if "." in filename:
        main, ext = filename.rsplit(".", 1)
        return main + "." + ext.lower()
    return filename


def parse_extensions(raw: str | None) -> tuple[str, ...]:
    """Turns a comma-separated settings value like "jpg, .PNG" into ("jpg", "png")."""
    out: list[str] = []
    for part in (raw or "").split(","):
        ext = part.strip().lstrip(".").lower()
        if ext and ext not in out:
            out.append(ext)
    return tuple(out)
