"""Tests for RemoteLayout and ReleaseMarker."""

import json
import pytest

from rollout.domain.value_objects.release_marker import ReleaseMarker
from rollout.domain.value_objects.remote_layout import RemoteLayout


class TestRemoteLayout:
    def test_paths(self):
        layout = RemoteLayout("/home/www", "shop")
        assert layout.application_root == "/home/www/shop"
        assert layout.releases_root == "/home/www/shop/releases"
        assert layout.current_path == "/home/www/shop/current"
        assert layout.marker_path == "/home/www/shop/.rollout-release"

    def test_resolve(self):
        layout = RemoteLayout("/home/www", "shop")
        assert layout.resolve() == "/home/www/shop"
        assert layout.resolve("") == "/home/www/shop"
        assert layout.resolve("shared/logs") == "/home/www/shop/shared/logs"
        assert layout.resolve("/tmp/x") == "/tmp/x"

    def test_validation(self):
        with pytest.raises(ValueError):
            RemoteLayout("", "shop")
        with pytest.raises(ValueError):
            RemoteLayout("/home/www", "")


class TestReleaseMarker:
    def test_to_json(self):
        marker = ReleaseMarker(current=200, previous=100)
        assert json.loads(marker.to_json()) == {"current": 200, "previous": 100}

    def test_parse_json(self):
        marker = ReleaseMarker.parse('{"current": 200, "previous": 100}')
        assert marker == ReleaseMarker(current=200, previous=100)
        assert marker.has_previous is True

    def test_parse_null_previous(self):
        marker = ReleaseMarker.parse('{"current": 200, "previous": null}')
        assert marker.previous is None
        assert marker.has_previous is True

    def test_parse_missing_previous(self):
        marker = ReleaseMarker.parse('{"current": 200}')
        assert marker.current == 200
        assert marker.has_previous is False

    def test_parse_bare_id(self):
        marker = ReleaseMarker.parse("1700000000\n")
        assert marker.current == 1700000000
        assert marker.has_previous is False

    def test_parse_string_ids(self):
        marker = ReleaseMarker.parse('{"current": "200", "previous": "abc"}')
        assert marker.current == 200
        assert marker.previous is None

    @pytest.mark.parametrize(
        "raw",
        ["", "   ", "not json", "[1, 2]", '{"current": true}', "true", '{"current": "²"}'],
    )
    def test_parse_unreadable(self, raw):
        assert ReleaseMarker.parse(raw).current is None
