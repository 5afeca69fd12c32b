"""
Tests for asset_paths.py - web path normalization for stored assets.
"""

from asset_paths import normalize_upload_path, resolve_asset_paths, thumbnail_name


class TestNormalizeUploadPath:
    """Tests for normalize_upload_path."""

    def test_normalized_path_is_unchanged(self):
        """An /uploads/... path should come back as-is."""
        path = "/uploads/projects/optimized/abc.jpeg"
        assert normalize_upload_path(path) == path

    def test_normalizing_twice_is_idempotent(self):
        """Normalizing the result again should not change it."""
        once = normalize_upload_path("projects/optimized/abc.jpeg")
        assert normalize_upload_path(once) == once

    def test_legacy_relative_path_gets_uploads_prefix(self):
        """projects/... should equal manually prefixing /uploads/."""
        legacy = "projects/optimized/abc.jpeg"
        assert normalize_upload_path(legacy) == "/uploads/" + legacy

    def test_absolute_filesystem_path_is_cut_at_uploads(self):
        """An absolute server path keeps only the part from /uploads/ on."""
        path = "/srv/app/public/uploads/projects/optimized/abc.jpeg"
        assert normalize_upload_path(path) == "/uploads/projects/optimized/abc.jpeg"

    def test_windows_separators(self):
        """Backslashes are treated as path separators."""
        assert normalize_upload_path("uploads\\projects\\a.png") == "/uploads/projects/a.png"

    def test_unknown_forms_return_none(self):
        """Empty or unrecognised paths have no normalized form."""
        assert normalize_upload_path(None) is None
        assert normalize_upload_path("") is None
        assert normalize_upload_path("images/a.png") is None


class TestResolveAssetPaths:
    """Tests for resolve_asset_paths."""

    def test_optimized_image_gets_matching_thumbnail(self):
        """The thumbnail sits next to the optimized image with a _thumb suffix."""
        paths = resolve_asset_paths("abc.jpeg", "/uploads/projects/optimized/abc.jpeg", "image/jpeg")
        assert paths.url == "/uploads/projects/optimized/abc.jpeg"
        assert paths.thumbnail_url == "/uploads/projects/thumbnails/abc_thumb.jpeg"

    def test_missing_file_path_falls_back_to_file_name(self):
        """Without a stored path the optimized directory is assumed."""
        paths = resolve_asset_paths("plan.png", None, "image/png")
        assert paths.url == "/uploads/projects/optimized/plan.png"
        assert paths.thumbnail_url == "/uploads/projects/thumbnails/plan_thumb.jpeg"

    def test_documents_point_at_originals_without_thumbnail(self):
        """Non-image files are served from originals and have no thumbnail."""
        paths = resolve_asset_paths("brief.pdf", "/uploads/projects/originals/brief.pdf", "application/pdf")
        assert paths.url == "/uploads/projects/originals/brief.pdf"
        assert paths.thumbnail_url is None

    def test_missing_mime_type_is_treated_as_image(self):
        """Old records without a mime type resolve like images."""
        paths = resolve_asset_paths("old.jpeg", "projects/optimized/old.jpeg", None)
        assert paths.url == "/uploads/projects/optimized/old.jpeg"

    def test_always_returns_a_path(self):
        """Even an empty record yields a string url."""
        paths = resolve_asset_paths(None, None, None)
        assert isinstance(paths.url, str)
        assert paths.url.startswith("/uploads/")


def test_thumbnail_name_replaces_extension():
    """Thumbnails are always JPEG."""
    assert thumbnail_name("facade.final.png") == "facade.final_thumb.jpeg"
