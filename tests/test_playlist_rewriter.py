"""
Tests for master and variant playlist rewriting
"""
import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from playlist_rewriter import (
    PlaylistRewriter,
    is_encrypted,
    resolve_reference,
    summarize_playlist,
)

BASE = "http://proxy.local/@channel/stream.m3u8"

MASTER = """#EXTM3U
#EXT-X-INDEPENDENT-SEGMENTS
#EXT-X-STREAM-INF:BANDWIDTH=1280000,RESOLUTION=640x360,CODECS="avc1.4d401e,mp4a.40.2"
https://manifest.example.com/hls/360/index.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=2560000,RESOLUTION=1280x720
https://manifest.example.com/hls/720/index.m3u8?sig=abc&exp=1
"""

VARIANT = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-TARGETDURATION:6
#EXT-X-MEDIA-SEQUENCE:100
#EXTINF:6.0,
seg100.ts
#EXTINF:6.0,
/abs/seg101.ts
#EXTINF:6.0,
https://other.example.com/seg102.ts
"""


class TestMasterRewrite:

    @pytest.fixture
    def rewriter(self):
        return PlaylistRewriter(BASE)

    def test_absolute_urls_become_variant_links(self, rewriter):
        result = rewriter.rewrite_master(MASTER, "https://manifest.example.com/master.m3u8")

        assert f"{BASE}?variant=https%3A%2F%2Fmanifest.example.com%2Fhls%2F360%2Findex.m3u8" in result.content
        assert (f"{BASE}?variant=https%3A%2F%2Fmanifest.example.com%2Fhls%2F720%2Findex.m3u8"
                "%3Fsig%3Dabc%26exp%3D1") in result.content
        assert "https://manifest.example.com/hls" not in result.content.replace(BASE, "")
        assert result.is_master
        assert result.source_url == "https://manifest.example.com/master.m3u8"

    def test_non_url_text_and_line_count_preserved(self, rewriter):
        result = rewriter.rewrite_master(MASTER)

        original_lines = MASTER.split("\n")
        rewritten_lines = result.content.split("\n")
        assert len(original_lines) == len(rewritten_lines)
        for before, after in zip(original_lines, rewritten_lines):
            if "https://" not in before:
                assert before == after

    def test_multiple_urls_on_one_line(self, rewriter):
        text = "#EXT-X-CUSTOM:https://a.example.com/1.m3u8,https://b.example.com/2.ts"
        result = rewriter.rewrite_master(text)

        assert result.content == (
            f"#EXT-X-CUSTOM:{BASE}?variant=https%3A%2F%2Fa.example.com%2F1.m3u8,"
            f"{BASE}?variant=https%3A%2F%2Fb.example.com%2F2.ts"
        )

    def test_quoted_attribute_keeps_its_quotes(self, rewriter):
        text = '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",URI="https://a.example.com/audio.m3u8"'
        result = rewriter.rewrite_master(text)

        assert result.content == (
            '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",'
            f'URI="{BASE}?variant=https%3A%2F%2Fa.example.com%2Faudio.m3u8"'
        )

    def test_non_playlist_urls_rewritten_uniformly(self, rewriter):
        result = rewriter.rewrite_master("https://a.example.com/thumb.jpg")
        assert result.content == f"{BASE}?variant=https%3A%2F%2Fa.example.com%2Fthumb.jpg"

    def test_encryption_flag(self, rewriter):
        assert rewriter.rewrite_master(MASTER).encrypted is False
        encrypted = '#EXTM3U\n#ext-x-key:METHOD=AES-128,URI="https://k.example.com/key"\n'
        assert rewriter.rewrite_master(encrypted).encrypted is True


class TestVariantRewrite:

    @pytest.fixture
    def rewriter(self):
        return PlaylistRewriter(BASE)

    def test_references_resolved_against_source(self, rewriter):
        result = rewriter.rewrite_variant(VARIANT, "https://cdn.example.com/hls/720/index.m3u8")
        lines = result.content.split("\n")

        assert lines[5] == f"{BASE}?url=https%3A%2F%2Fcdn.example.com%2Fhls%2F720%2Fseg100.ts"
        assert lines[7] == f"{BASE}?url=https%3A%2F%2Fcdn.example.com%2Fabs%2Fseg101.ts"
        assert lines[9] == f"{BASE}?url=https%3A%2F%2Fother.example.com%2Fseg102.ts"
        assert not result.is_master

    def test_comment_and_blank_lines_byte_identical(self, rewriter):
        text = "#EXTM3U\n\n#EXTINF:6.0,title with spaces\nseg.ts\n\n#EXT-X-ENDLIST\n"
        result = rewriter.rewrite_variant(text, "https://cdn.example.com/live/index.m3u8")

        before = text.split("\n")
        after = result.content.split("\n")
        assert len(before) == len(after)
        for original, rewritten in zip(before, after):
            if not original or original.startswith("#"):
                assert original == rewritten

    def test_single_segment_playlist(self, rewriter):
        result = rewriter.rewrite_variant("#EXTINF:6\nseg1.ts\n", "https://x/v1.m3u8")
        assert result.content == f"#EXTINF:6\n{BASE}?url=https%3A%2F%2Fx%2Fseg1.ts\n"

    def test_any_line_ending_style(self, rewriter):
        text = "#EXTM3U\r\n#EXTINF:6,\r\nseg1.ts\r#EXTINF:6,\nseg2.ts"
        result = rewriter.rewrite_variant(text, "https://x/live/v.m3u8")

        assert result.content.split("\n") == [
            "#EXTM3U",
            "#EXTINF:6,",
            f"{BASE}?url=https%3A%2F%2Fx%2Flive%2Fseg1.ts",
            "#EXTINF:6,",
            f"{BASE}?url=https%3A%2F%2Fx%2Flive%2Fseg2.ts",
        ]

    def test_malformed_line_passes_through(self, rewriter):
        text = "#EXTINF:6,\nhttp://[::1\n#EXTINF:6,\nseg2.ts"
        result = rewriter.rewrite_variant(text, "https://x/live/v.m3u8")
        lines = result.content.split("\n")

        assert lines[1] == "http://[::1"
        assert lines[3] == f"{BASE}?url=https%3A%2F%2Fx%2Flive%2Fseg2.ts"

    def test_encryption_flag(self, rewriter):
        text = '#EXTM3U\n#EXT-X-KEY:METHOD=AES-128,URI="key.bin"\n#EXTINF:6,\nseg.ts\n'
        result = rewriter.rewrite_variant(text, "https://x/v.m3u8")
        assert result.encrypted is True
        # Directive lines are never rewritten, even when they carry a URI
        assert '#EXT-X-KEY:METHOD=AES-128,URI="key.bin"' in result.content


class TestHelpers:

    def test_resolve_reference(self):
        assert resolve_reference("a.ts", "https://x/p/v.m3u8") == "https://x/p/a.ts"
        assert resolve_reference("  a.ts  ", "https://x/p/v.m3u8") == "https://x/p/a.ts"
        assert resolve_reference("../a.ts", "https://x/p/q/v.m3u8") == "https://x/p/a.ts"
        assert resolve_reference("//cdn.x/a.ts", "https://x/v.m3u8") == "https://cdn.x/a.ts"

    def test_resolve_reference_rejects_unusable(self):
        assert resolve_reference("http://[::1", "https://x/v.m3u8") is None
        assert resolve_reference("http://x:notaport/a.ts", "https://x/v.m3u8") is None
        assert resolve_reference("data:text/plain,hi", "https://x/v.m3u8") is None

    def test_is_encrypted_anywhere(self):
        assert is_encrypted("#EXTM3U\n#EXT-X-KEY:METHOD=NONE")
        assert not is_encrypted("#EXTM3U\n#EXTINF:6,\nseg.ts")


class TestDebugDump:

    def test_master_dump(self):
        result = PlaylistRewriter(BASE).rewrite_master(MASTER, "https://manifest.example.com/master.m3u8")
        dump = result.debug_dump()

        assert dump.startswith("# Proxy debugging\n")
        assert "# source_manifest: https://manifest.example.com/master.m3u8" in dump
        assert "# master_encrypted: false" in dump
        assert "# playlist: master, 2 variants, 0 media renditions" in dump
        assert MASTER in dump
        assert "--- rewritten ---" in dump
        assert result.content in dump

    def test_variant_dump(self):
        result = PlaylistRewriter(BASE).rewrite_variant(VARIANT, "https://cdn.example.com/v.m3u8")
        dump = result.debug_dump()

        assert "# variant_source: https://cdn.example.com/v.m3u8" in dump
        assert "# encrypted: false" in dump
        assert "# playlist: media, 3 segments" in dump
        assert "--- original variant ---" in dump
        assert "--- rewritten variant ---" in dump

    def test_summary(self):
        assert summarize_playlist(VARIANT) == "media, 3 segments"
        assert summarize_playlist(MASTER) == "master, 2 variants, 0 media renditions"
