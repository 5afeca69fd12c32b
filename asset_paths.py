"""
Web paths for stored project assets.

Older records hold absolute filesystem paths, paths relative to the uploads
root, or nothing at all, so everything is normalized to a path under /uploads.
No I/O happens here and every input yields a path.
"""

import posixpath
from typing import NamedTuple, Optional

UPLOADS_ROOT = "/uploads"
OPTIMIZED_DIR = "projects/optimized"
THUMBNAILS_DIR = "projects/thumbnails"
ORIGINALS_DIR = "projects/originals"


class AssetPaths(NamedTuple):
    url: str
    thumbnail_url: Optional[str]


def is_image(mime_type: Optional[str]) -> bool:
    # Records without a mime type predate document uploads: treat them as images.
    return not mime_type or mime_type.startswith("image/")


def thumbnail_name(file_name: str) -> str:
    stem, _ = posixpath.splitext(file_name)
    return f"{stem}_thumb.jpeg"


def normalize_upload_path(file_path: Optional[str]) -> Optional[str]:
    """Return file_path as a /uploads/... web path, or None if it has no known form."""
    if not file_path:
        return None
    path = file_path.replace("\\", "/")
    idx = path.find(f"{UPLOADS_ROOT}/")
    if idx >= 0:
        return path[idx:]
    if path.startswith("uploads/"):
        return f"/{path}"
    if path.startswith("projects/"):
        return f"{UPLOADS_ROOT}/{path}"
    if path.startswith("/projects/"):
        return f"{UPLOADS_ROOT}{path}"
    return None


def resolve_asset_paths(file_name: Optional[str], file_path: Optional[str] = None,
                        mime_type: Optional[str] = None) -> AssetPaths:
    file_name = file_name or ""
    if not is_image(mime_type):
        return AssetPaths(f"{UPLOADS_ROOT}/{ORIGINALS_DIR}/{file_name}", None)

    url = normalize_upload_path(file_path) or f"{UPLOADS_ROOT}/{OPTIMIZED_DIR}/{file_name}"

    optimized = f"/{OPTIMIZED_DIR}/"
    if optimized in url:
        head, tail = url.split(optimized, 1)
        thumb = f"{head}/{THUMBNAILS_DIR}/{thumbnail_name(tail)}"
    else:
        thumb = f"{UPLOADS_ROOT}/{THUMBNAILS_DIR}/{thumbnail_name(file_name)}"
    return AssetPaths(url, thumb)


def asset_web_path(asset: dict) -> str:
    return resolve_asset_paths(asset.get("file_name"), asset.get("file_path"), asset.get("mime_type")).url
