"""Tests for schedule entry helpers."""

from __future__ import annotations

from certlifecycle.scheduler.base import (
    entries_for,
    has_deploy_hook,
    references,
    renewal_entry,
)

LINE = (
    "0 3 * * * /usr/bin/certbot renew --cert-name share.example.com "
    "--deploy-hook /srv/onprem/scripts/cert-deploy-hook.sh --quiet"
)


class TestRenewalEntry:
    def test_daily_at_three(self):
        cmd = ["/usr/bin/certbot", "renew", "--cert-name", "a.example.com", "--quiet"]
        assert renewal_entry(cmd) == (
            "0 3 * * * /usr/bin/certbot renew --cert-name a.example.com --quiet"
        )

    def test_custom_time_and_quoting(self):
        cmd = ["/usr/bin/certbot", "renew", "--deploy-hook", "/srv/my app/hook.sh"]
        assert renewal_entry(cmd, hour=4, minute=30) == (
            "30 4 * * * /usr/bin/certbot renew --deploy-hook '/srv/my app/hook.sh'"
        )


class TestReferences:
    def test_exact_token(self):
        assert references(LINE, "share.example.com")

    def test_subdomain_not_matched(self):
        assert not references(LINE, "example.com")

    def test_equals_form(self):
        assert references("0 3 * * * certbot renew --cert-name=a.example.com", "a.example.com")

    def test_comment_ignored(self):
        assert not references("# certbot renew --cert-name a.example.com", "a.example.com")

    def test_unbalanced_quotes_fall_back_to_split(self):
        line = "0 3 * * * certbot renew --cert-name a.example.com 'unterminated"
        assert references(line, "a.example.com")


class TestHasDeployHook:
    def test_present(self):
        assert has_deploy_hook(LINE)

    def test_equals_form(self):
        assert has_deploy_hook("certbot renew --deploy-hook=/x.sh")

    def test_absent(self):
        assert not has_deploy_hook("0 3 * * * certbot renew --cert-name a.example.com")


def test_entries_for():
    entries = ["MAILTO=root", LINE, "0 4 * * * /usr/local/bin/backup.sh"]
    assert entries_for(entries, "share.example.com") == [LINE]
    assert entries_for(entries, "other.example.com") == []
