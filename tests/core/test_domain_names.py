"""Tests for certlifecycle.core.domains."""

from __future__ import annotations

import pytest

from certlifecycle.core.domains import (
    is_valid_domain,
    renewed_domains_match,
    split_renewed_domains,
)
from certlifecycle.core.types import DomainMatch


class TestIsValidDomain:
    @pytest.mark.parametrize(
        "domain",
        ["example.com", "minio.example.com", "a-b.c-d.example", "example.com.", "x1.io"],
    )
    def test_valid(self, domain):
        assert is_valid_domain(domain)

    @pytest.mark.parametrize(
        "domain",
        [
            "",
            "localhost",
            "-bad.example.com",
            "bad-.example.com",
            "under_score.example.com",
            "space here.example.com",
            "a..example.com",
            ("a" * 64) + ".example.com",
        ],
    )
    def test_invalid(self, domain):
        assert not is_valid_domain(domain)

    def test_total_length_limit(self):
        label = "a" * 63
        domain = ".".join([label] * 4)
        assert len(domain) > 253
        assert not is_valid_domain(domain)


class TestSplitRenewedDomains:
    def test_space_separated(self):
        assert split_renewed_domains("a.example.com b.example.com") == [
            "a.example.com",
            "b.example.com",
        ]

    def test_comma_and_space(self):
        assert split_renewed_domains(" a.example.com, b.example.com ") == [
            "a.example.com",
            "b.example.com",
        ]

    def test_empty(self):
        assert split_renewed_domains("") == []
        assert split_renewed_domains(None) == []


class TestRenewedDomainsMatch:
    def test_exact_member(self):
        assert renewed_domains_match("svc.example.com", "svc.example.com other.example.com")

    def test_unrelated(self):
        assert not renewed_domains_match("svc.example.com", "other.example.com")

    def test_token_mode_rejects_superdomain(self):
        assert not renewed_domains_match("example.com", "sub.example.com")

    def test_substring_mode_accepts_superdomain(self):
        assert renewed_domains_match("example.com", "sub.example.com", DomainMatch.SUBSTRING)

    def test_case_and_trailing_dot(self):
        assert renewed_domains_match("svc.example.com", "SVC.Example.com.")

    def test_empty_renewed_domains(self):
        assert not renewed_domains_match("svc.example.com", "")
        assert not renewed_domains_match("svc.example.com", None, DomainMatch.SUBSTRING)
