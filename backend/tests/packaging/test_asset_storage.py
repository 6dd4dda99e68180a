"""Tests for asset layout, title validation and upload staging cleanup."""

import string
from pathlib import Path
from urllib.parse import quote

import pytest
from hypothesis import given, settings, strategies as st

from streamgate.modules.packaging.schemas import SourceAsset
from streamgate.modules.packaging.storage import (
    AssetLayout,
    InvalidTitleError,
    cleanup_local_file,
    clear_temp_uploads,
    get_public_url,
    validate_title,
)
from streamgate.modules.signing.jwt import build_path_constraint, path_constraint_matches

SUB_DELIMS = "!$&'()*+,;="

safe_title_strategy = st.text(
    alphabet=string.ascii_letters + string.digits + "-._~" + SUB_DELIMS,
    min_size=1,
    max_size=40,
).filter(lambda t: t not in (".", ".."))


class TestValidateTitle:
    @pytest.mark.parametrize("title", ["demo", "Holiday_(2024)", "clip.v2", "a+b", "tom&jerry"])
    def test_accepts_single_segments(self, title: str) -> None:
        assert validate_title(title) == title

    @pytest.mark.parametrize(
        "title",
        [
            "", "  ", ".", "..", "../etc", "a/b", "a\\b", "tab\there",
            "my video", "a#b", "a?b", "50%", "übung", "a[1]",
        ],
    )
    def test_rejects_unsafe_titles(self, title: str) -> None:
        with pytest.raises(InvalidTitleError):
            validate_title(title)

    def test_invalid_title_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_title("..")

    @given(title=safe_title_strategy)
    @settings(max_examples=100)
    def test_layout_stays_inside_videos_dir(self, title: str) -> None:
        """For any accepted title, the asset directory SHALL be a direct
        child of <public>/videos.
        """
        validate_title(title)
        layout = AssetLayout(public_dir=Path("/srv/public"), title=title)

        assert layout.directory.parent == Path("/srv/public/videos")
        assert layout.manifest_key == f"videos/{title}/index.mpd"

    @given(title=st.text(alphabet=st.characters(max_codepoint=0x24F), min_size=1, max_size=12))
    @settings(max_examples=200)
    def test_accepted_titles_need_no_url_escaping(self, title: str) -> None:
        """For any string, either the title SHALL be rejected or the URL a
        player fetches for it SHALL carry the title unchanged and match the
        token path constraint issued for it.
        """
        try:
            validate_title(title)
        except InvalidTitleError:
            return

        encoded = quote(title, safe=SUB_DELIMS)
        url = f"https://cdn.example.com/videos/{encoded}/index.mpd"

        assert encoded == title
        assert path_constraint_matches(build_path_constraint(title), url)


class TestAssetLayout:
    def test_paths(self, tmp_path: Path) -> None:
        layout = AssetLayout(public_dir=tmp_path, title="demo")

        assert layout.manifest_file == tmp_path / "videos" / "demo" / "index.mpd"
        assert layout.thumbnail_file == tmp_path / "videos" / "demo" / "thumbnail.webp"
        assert layout.thumbnail_key == "videos/demo/thumbnail.webp"

    def test_ensure_directory_is_idempotent(self, tmp_path: Path) -> None:
        layout = AssetLayout(public_dir=tmp_path, title="demo")

        layout.ensure_directory()
        layout.ensure_directory()

        assert layout.directory.is_dir()


class TestPublicUrl:
    def test_relative_without_cdn(self) -> None:
        assert get_public_url("videos/demo/index.mpd") == "videos/demo/index.mpd"

    @pytest.mark.parametrize("cdn", ["https://cdn.example.com", "https://cdn.example.com/"])
    def test_cdn_prefix(self, cdn: str) -> None:
        assert (
            get_public_url("videos/demo/index.mpd", cdn)
            == "https://cdn.example.com/videos/demo/index.mpd"
        )


class TestStagingCleanup:
    def test_clear_temp_uploads(self, tmp_path: Path) -> None:
        staging = tmp_path / "temp-uploads"
        staging.mkdir()
        (staging / "f1").write_bytes(b"x")
        (staging / "f2").write_bytes(b"y")
        (staging / "partial").mkdir()
        (staging / "partial" / "chunk").write_bytes(b"z")

        removed = clear_temp_uploads(staging)

        assert removed == 3
        assert staging.is_dir()
        assert list(staging.iterdir()) == []

    def test_clear_creates_missing_directory(self, tmp_path: Path) -> None:
        staging = tmp_path / "not-yet"

        assert clear_temp_uploads(staging) == 0
        assert staging.is_dir()

    def test_cleanup_local_file(self, tmp_path: Path) -> None:
        source = tmp_path / "upload"
        source.write_bytes(b"x")

        assert cleanup_local_file(source) is True
        assert cleanup_local_file(source) is False


class TestSourceAsset:
    def test_declared_title_wins(self, tmp_path: Path) -> None:
        asset = SourceAsset(source_path=tmp_path / "abc", original_filename="x.mp4", title="demo")
        assert asset.resolved_title() == "demo"

    def test_falls_back_to_stored_name(self, tmp_path: Path) -> None:
        asset = SourceAsset(source_path=tmp_path / "abc123")
        assert asset.resolved_title() == "abc123"
