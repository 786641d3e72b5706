"""Tests for the Node value object."""

import pytest
from rollout.domain.value_objects.node import Node


class TestNode:
    def test_defaults(self):
        node = Node(host="web1.example.com")
        assert node.user == "root"
        assert node.port == 22
        assert str(node) == "root@web1.example.com:22"

    def test_ipv4(self):
        assert Node(host="192.168.1.10").host == "192.168.1.10"

    def test_ipv4_out_of_range(self):
        with pytest.raises(ValueError, match="Invalid hostname"):
            Node(host="300.1.1.1")

    def test_ipv6(self):
        assert Node(host="::1").host == "::1"

    def test_invalid_hostname(self):
        with pytest.raises(ValueError):
            Node(host="-bad-.example.com")

    def test_empty_user(self):
        with pytest.raises(ValueError, match="user"):
            Node(host="a", user="")

    def test_port_bounds(self):
        with pytest.raises(ValueError, match="Port"):
            Node(host="a", port=0)
        with pytest.raises(ValueError):
            Node(host="a", port=70000)

    def test_hashable(self):
        assert len({Node(host="a"), Node(host="a")}) == 1


class TestNodeParse:
    def test_bare_host_uses_defaults(self):
        node = Node.parse("web1", user="deploy", port=2222)
        assert node == Node(host="web1", user="deploy", port=2222)

    def test_user_host_port(self):
        node = Node.parse("admin@10.0.0.5:2200")
        assert node == Node(host="10.0.0.5", user="admin", port=2200)

    def test_ipv6_brackets(self):
        node = Node.parse("ops@[fe80::1]:2222")
        assert node == Node(host="fe80::1", user="ops", port=2222)

    def test_unterminated_bracket(self):
        with pytest.raises(ValueError, match="Unterminated"):
            Node.parse("[fe80::1")

    def test_whitespace_stripped(self):
        assert Node.parse("  web1  ").host == "web1"
