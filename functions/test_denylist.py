#!/usr/bin/env python3
"""Unit tests for the disallowed domain filter."""

import pytest
from denylist import is_disallowed, principal_domain, select_disallowed


DISALLOWED = ["andrew.cmu.edu", "gmail.com"]


class TestPrincipalDomain:
    """Test principal_domain function."""

    @pytest.mark.parametrize(
        ("principal", "expected"),
        [
            ("user:tom@gmail.com", "gmail.com"),
            ("serviceAccount:bot@p.iam.gserviceaccount.com", "p.iam.gserviceaccount.com"),
            ("group:admins@andrew.cmu.edu", "andrew.cmu.edu"),
            ("tom@gmail.com", "gmail.com"),
            ("user:tom", None),
            ("domain:gmail.com", None),
            ("allUsers", None),
            ("user:tom@", None),
            ("", None),
        ],
    )
    def test_domain(self, principal, expected):
        """Test domain extraction."""
        assert principal_domain(principal) == expected


class TestIsDisallowed:
    """Test is_disallowed function."""

    def test_disallowed_domain(self):
        """Test members of a disallowed domain are disallowed."""
        assert is_disallowed("user:tom@gmail.com", DISALLOWED) is True

    def test_allowed_domain(self):
        """Test members of other domains are allowed."""
        assert is_disallowed("user:tom@foo.com", DISALLOWED) is False

    def test_exact_match_only(self):
        """Test subdomains and parent domains do not match."""
        assert is_disallowed("user:tom@mail.gmail.com", DISALLOWED) is False
        assert is_disallowed("user:tom@cmu.edu", DISALLOWED) is False

    def test_case_sensitive(self):
        """Test matching is case sensitive."""
        assert is_disallowed("user:tom@GMAIL.COM", DISALLOWED) is False

    def test_malformed_principal_never_disallowed(self):
        """Test principals without a domain are never disallowed."""
        assert is_disallowed("user:gmail.com", DISALLOWED) is False
        assert is_disallowed("user:tom", [""]) is False

    def test_empty_configuration(self):
        """Test nothing is disallowed without configured domains."""
        assert is_disallowed("user:tom@gmail.com", []) is False
        assert is_disallowed("user:tom@gmail.com", [""]) is False


class TestSelectDisallowed:
    """Test select_disallowed function."""

    def test_selects_in_order(self):
        """Test disallowed members are selected in input order."""
        members = [
            "user:b@gmail.com",
            "user:test@test.com",
            "user:a@andrew.cmu.edu",
            "user:b@gmail.com",
            "user:nodomain",
        ]

        assert select_disallowed(members, DISALLOWED) == [
            "user:b@gmail.com",
            "user:a@andrew.cmu.edu",
        ]

    def test_nothing_selected(self):
        """Test no members are selected from allowed domains."""
        assert select_disallowed(["user:tom@foo.com"], DISALLOWED) == []
