"""
Unit tests for cloud path helpers.
"""

import pytest

from mrcloud import paths


class TestNormalize:
    @pytest.mark.parametrize("raw,expected", [
        ("", "/"),
        ("/", "/"),
        ("docs", "/docs"),
        ("/docs/", "/docs"),
        ("//docs//a.txt", "/docs/a.txt"),
        ("docs\\reports\\q1.pdf", "/docs/reports/q1.pdf"),
        ("/docs/./a.txt", "/docs/a.txt"),
        ("/docs/../a.txt", "/a.txt"),
        ("/..", "/"),
    ])
    def test_normalize(self, raw, expected):
        assert paths.normalize(raw) == expected


class TestCombine:
    def test_relative_child(self):
        assert paths.combine("/docs", "a.txt") == "/docs/a.txt"

    def test_absolute_child_replaces_base(self):
        assert paths.combine("/docs", "/video/b.mp4") == "/video/b.mp4"

    def test_backslash_child(self):
        assert paths.combine("/docs", "reports\\q1.pdf") == "/docs/reports/q1.pdf"

    def test_root_base(self):
        assert paths.combine("/", "a") == "/a"


class TestParentAndName:
    def test_parent(self):
        assert paths.parent("/docs/a.txt") == "/docs"
        assert paths.parent("/a.txt") == "/"
        assert paths.parent("/") == "/"

    def test_name(self):
        assert paths.name("/docs/a.txt") == "a.txt"
        assert paths.name("/") == ""


class TestQuote:
    def test_keeps_separators(self):
        assert paths.quote("/docs/a b.txt") == "/docs/a%20b.txt"

    def test_encodes_unicode(self):
        assert paths.quote("/фото") == "/%D1%84%D0%BE%D1%82%D0%BE"
