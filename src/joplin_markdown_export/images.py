"""Rewrite image references in a note body into portable Markdown.

Two regex passes over the text, not a document parse:

1. internal references (``<scheme>://file:<token>``) are materialised into an
   ``images`` directory next to the note and replaced by relative paths;
2. raw ``<img>`` tags become ``![alt](src)``, with ``|width`` appended to the
   alt text when the declared width is not the image's intrinsic width.

Finally single-line ``<p>...</p>`` wrappers are dropped.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Awaitable, Callable
from pathlib import Path, PurePath
from typing import Protocol

from bs4 import BeautifulSoup
from PIL import Image

from .models import ImageReference

logger = logging.getLogger(__name__)

IMG_TAG_RE = re.compile(r"<img[^>]*>", re.IGNORECASE)
PARAGRAPH_RE = re.compile(r"<p>([^>\n]*)</p>")
DEFAULT_ALT = "IMAGE"

# Characters that end an internal reference token.
_TOKEN_END = r"[) \"']"


class ImageExporter(Protocol):
    """Materialises an internal image reference into ``dest_dir``.

    Returns the written file path, or ``None`` when the payload could not be
    extracted.
    """

    def __call__(self, uri: str, dest_dir: Path) -> Awaitable[str | None]: ...


SizeProbe = Callable[[str], tuple[int, int]]


def read_image_size(path: str) -> tuple[int, int]:
    """Return the intrinsic ``(width, height)`` of the image at ``path``."""
    with Image.open(path) as img:
        return img.size


def reference_pattern(uri_scheme: str) -> re.Pattern[str]:
    return re.compile(rf"{re.escape(uri_scheme)}://file:[^) \"']*")


def find_image_references(body: str, uri_scheme: str) -> list[str]:
    """All internal references in ``body``, left to right, duplicates kept."""
    return reference_pattern(uri_scheme).findall(body)


def _replace_reference(body: str, uri: str, replacement: str) -> str:
    # Exact token match only: ``file:abc`` must not rewrite ``file:abcd``.
    pattern = re.compile(rf"{re.escape(uri)}(?={_TOKEN_END}|$)")
    return pattern.sub(lambda _m: replacement, body)


def _as_markdown_path(path: str, base_path: Path | str | None) -> str:
    if base_path:
        path = os.path.relpath(path, base_path)
    return PurePath(path).as_posix()


def parse_img_tag(tag: str) -> ImageReference | None:
    soup = BeautifulSoup(tag, "html.parser")
    img = soup.find("img")
    if img is None:
        return None
    width = img.get("width")
    return ImageReference(
        raw=tag,
        src=img.get("src") or "",
        alt=img.get("alt") or DEFAULT_ALT,
        width=width or None,
    )


def _widths_differ(intrinsic_width: int, declared: str) -> bool:
    # Numeric comparison when the declared width is a number ("300.0" == 300).
    try:
        return float(declared) != intrinsic_width
    except ValueError:
        return True


def _size_hint(ref: ImageReference, base_path: Path | str | None, probe: SizeProbe) -> str:
    if not ref.width:
        return ""
    location = os.path.abspath(os.path.join(base_path or "", ref.src))
    try:
        intrinsic_width, _height = probe(location)
    except Exception as exc:
        logger.info("Error getting size of %s in %s: %s", ref.src, base_path, exc)
        return f"|{ref.width}"
    if _widths_differ(intrinsic_width, ref.width):
        return f"|{ref.width}"
    return ""


def img_tag_to_markdown(
    ref: ImageReference,
    base_path: Path | str | None = None,
    probe: SizeProbe = read_image_size,
) -> str:
    return f"![{ref.alt}{_size_hint(ref, base_path, probe)}]({ref.src})"


def unwrap_paragraphs(body: str) -> str:
    return PARAGRAPH_RE.sub(r"\1", body)


async def rewrite_images(
    body: str,
    dest_dir: Path | str,
    base_path: Path | str | None = None,
    *,
    export_image: ImageExporter,
    uri_scheme: str = "joplin",
    images_dir_name: str = "images",
    probe: SizeProbe = read_image_size,
) -> str:
    """Return ``body`` with its images made self-contained under ``dest_dir``."""
    uris = find_image_references(body, uri_scheme)
    images_dir = Path(dest_dir) / images_dir_name
    if uris:
        images_dir.mkdir(exist_ok=True)

    for uri in uris:
        image_path = await export_image(uri, images_dir)
        if isinstance(image_path, str) and image_path:
            body = _replace_reference(body, uri, _as_markdown_path(image_path, base_path))

    for tag in IMG_TAG_RE.findall(body):
        ref = parse_img_tag(tag)
        if ref is None:
            continue
        body = body.replace(tag, img_tag_to_markdown(ref, base_path, probe), 1)

    return unwrap_paragraphs(body)
