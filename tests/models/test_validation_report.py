"""Tests for the validation result models."""

from __future__ import annotations

import pytest

from certlifecycle.core.types import CheckStatus
from certlifecycle.models.validation import CheckResult, ValidationReport


@pytest.fixture
def report():
    return ValidationReport(
        service="minio",
        domain="minio.example.com",
        results=(
            CheckResult("lineage", CheckStatus.PASS, "ok"),
            CheckResult("hook-exists", CheckStatus.FAIL, "missing"),
            CheckResult("hook-executable", CheckStatus.SKIP, "no deploy hook found"),
            CheckResult("renewal-log", CheckStatus.WARN, "not found"),
        ),
    )


class TestValidationReport:
    def test_failed(self, report):
        assert report.failed is True

    def test_warnings_do_not_fail(self):
        report = ValidationReport(
            service="minio",
            domain="minio.example.com",
            results=(CheckResult("expiry", CheckStatus.WARN, "expires in 12 days"),),
        )
        assert report.failed is False

    def test_result_lookup(self, report):
        assert report.result("hook-exists").message == "missing"
        with pytest.raises(KeyError):
            report.result("dry-run")

    def test_counts(self, report):
        assert report.counts() == {
            CheckStatus.PASS: 1,
            CheckStatus.FAIL: 1,
            CheckStatus.WARN: 1,
            CheckStatus.SKIP: 1,
        }

    def test_by_status(self, report):
        assert [r.name for r in report.by_status(CheckStatus.SKIP)] == ["hook-executable"]

    def test_empty(self):
        report = ValidationReport(service="onprem", domain="share.example.com")
        assert report.failed is False
        assert report.counts()[CheckStatus.PASS] == 0
