"""
Tests for the shared header helpers
"""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from headers import get_content_type, merge_vary


class TestMergeVary:

    def test_repeated_origin_collapses(self):
        assert merge_vary(["Origin, Origin"]) == "Origin"
        assert merge_vary(["Origin", "origin"]) == "Origin"

    def test_distinct_tokens_keep_their_order(self):
        assert merge_vary(["Accept-Encoding", "Origin, Accept-Encoding"]) == "Accept-Encoding, Origin"

    def test_empty(self):
        assert merge_vary([]) == ""
        assert merge_vary([" , "]) == ""


class TestContentType:

    def test_query_string_ignored(self):
        assert get_content_type("https://cdn.example.com/seg1.ts?sig=abc") == "video/mp2t"

    def test_known_suffixes(self):
        assert get_content_type("https://x/a.m3u8") == "application/vnd.apple.mpegurl"
        assert get_content_type("https://x/init.m4s") == "video/mp4"
        assert get_content_type("https://x/a.aac") == "audio/aac"
        assert get_content_type("https://x/subs.vtt") == "text/vtt"
        assert get_content_type("https://x/blob") == "application/octet-stream"
