"""Tests for evaluating client records into compliance counts."""

from datetime import date, datetime, timedelta, timezone

import pytest

from compliance.evaluation import (
    DocumentRecord,
    FilingRecord,
    FilingStatus,
    RuleSpec,
    RuleType,
    evaluate_client,
    summarize_issues,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

REQUIRE_ID = RuleSpec(RuleType.DOCUMENT_REQUIRED, "ID")
REQUIRE_LICENSE = RuleSpec(RuleType.DOCUMENT_REQUIRED, "Trade License")
REQUIRE_VAT = RuleSpec(RuleType.FILING_REQUIRED, "VAT")


def evaluate(rules, documents=(), filings=(), client_type=None):
    return evaluate_client(client_type, rules, list(documents), list(filings), NOW)


class TestDocumentRules:
    """document_required rules."""

    def test_missing_document(self):
        counts = evaluate([REQUIRE_ID])
        assert counts.missing_count == 1
        assert counts.breakdown.issues == ["Missing required document: ID"]
        assert counts.breakdown.recommendations == ["Upload ID"]

    def test_document_without_expiry_is_ok(self):
        counts = evaluate([REQUIRE_ID], [DocumentRecord("ID")])
        assert (counts.missing_count, counts.expiring_count) == (0, 0)
        assert counts.breakdown.issues == []

    def test_expired_document_counts_as_expiring(self):
        """Should fold expired documents into expiring_count."""
        counts = evaluate([REQUIRE_ID], [DocumentRecord("ID", NOW - timedelta(days=1))])
        assert counts.expiring_count == 1
        assert counts.breakdown.expired_documents == 1
        assert counts.breakdown.expiring_documents == 0
        assert "ID has expired" in counts.breakdown.issues

    def test_expiring_within_lookahead(self):
        counts = evaluate([REQUIRE_ID], [DocumentRecord("ID", NOW + timedelta(days=10))])
        assert counts.expiring_count == 1
        assert counts.breakdown.expiring_documents == 1

    def test_expiring_beyond_lookahead_is_ok(self):
        counts = evaluate([REQUIRE_ID], [DocumentRecord("ID", NOW + timedelta(days=45))])
        assert counts.expiring_count == 0

    def test_custom_lookahead(self):
        counts = evaluate_client(
            None, [REQUIRE_ID], [DocumentRecord("ID", NOW + timedelta(days=45))], [], NOW,
            expiring_lookahead_days=60,
        )
        assert counts.expiring_count == 1

    def test_latest_expiry_wins(self):
        """Should judge by the latest expiry among documents of one type."""
        documents = [
            DocumentRecord("ID", NOW - timedelta(days=300)),
            DocumentRecord("ID", NOW + timedelta(days=300)),
        ]
        assert evaluate([REQUIRE_ID], documents).expiring_count == 0

    def test_naive_and_date_values_accepted(self):
        documents = [
            DocumentRecord("ID", (NOW - timedelta(days=2)).replace(tzinfo=None)),
            DocumentRecord("Trade License", date(2025, 6, 10)),
        ]
        counts = evaluate([REQUIRE_ID, REQUIRE_LICENSE], documents)
        assert counts.breakdown.expired_documents == 1
        assert counts.breakdown.expiring_documents == 1

    def test_other_document_types_ignored(self):
        counts = evaluate([REQUIRE_ID], [DocumentRecord("Passport")])
        assert counts.missing_count == 1


class TestFilingRules:
    """filing_required rules."""

    def test_no_filing_is_overdue(self):
        counts = evaluate([REQUIRE_VAT])
        assert counts.overdue_filings_count == 1
        assert counts.breakdown.issues == ["No VAT filings found"]

    @pytest.mark.parametrize("status", [FilingStatus.SUBMITTED, FilingStatus.APPROVED])
    def test_completed_filing_is_ok(self, status):
        filing = FilingRecord("VAT", status, due_date=NOW - timedelta(days=30))
        assert evaluate([REQUIRE_VAT], filings=[filing]).overdue_filings_count == 0

    def test_overdue_status(self):
        filing = FilingRecord("VAT", FilingStatus.OVERDUE, due_date=NOW + timedelta(days=30))
        assert evaluate([REQUIRE_VAT], filings=[filing]).overdue_filings_count == 1

    def test_past_due_date(self):
        filing = FilingRecord("VAT", FilingStatus.DRAFT, due_date=NOW - timedelta(days=1))
        counts = evaluate([REQUIRE_VAT], filings=[filing])
        assert counts.overdue_filings_count == 1
        assert "VAT is overdue" in counts.breakdown.issues

    def test_upcoming_is_informational(self):
        filing = FilingRecord("VAT", FilingStatus.PENDING, due_date=NOW + timedelta(days=7))
        counts = evaluate([REQUIRE_VAT], filings=[filing])
        assert counts.overdue_filings_count == 0
        assert counts.breakdown.upcoming_filings == 1
        assert counts.breakdown.recommendations == ["VAT due soon"]

    def test_latest_filing_wins(self):
        """Should judge by the most recently created filing of a type."""
        filings = [
            FilingRecord("VAT", FilingStatus.SUBMITTED, created_at=NOW - timedelta(days=100)),
            FilingRecord("VAT", FilingStatus.DRAFT, due_date=NOW - timedelta(days=1),
                         created_at=NOW - timedelta(days=10)),
        ]
        assert evaluate([REQUIRE_VAT], filings=filings).overdue_filings_count == 1

    def test_draft_without_due_date_is_ok(self):
        filing = FilingRecord("VAT", FilingStatus.DRAFT)
        assert evaluate([REQUIRE_VAT], filings=[filing]).overdue_filings_count == 0


class TestRuleSelection:
    """Which rules apply to a client."""

    def test_client_type_filter(self):
        company_only = RuleSpec(RuleType.DOCUMENT_REQUIRED, "Trade License",
                                client_types=frozenset({"company"}))
        assert evaluate([company_only], client_type="individual").breakdown.rules_evaluated == 0
        assert evaluate([company_only], client_type="company").missing_count == 1

    def test_no_rules_is_clean(self):
        counts = evaluate([])
        assert (counts.missing_count, counts.expiring_count, counts.overdue_filings_count) == (0, 0, 0)

    def test_mixed_rules(self):
        documents = [DocumentRecord("ID", NOW + timedelta(days=5))]
        counts = evaluate([REQUIRE_ID, REQUIRE_LICENSE, REQUIRE_VAT], documents)
        assert counts.missing_count == 1
        assert counts.expiring_count == 1
        assert counts.overdue_filings_count == 1
        assert counts.breakdown.rules_evaluated == 3

    def test_summarize_issues(self):
        counts = evaluate([REQUIRE_ID, REQUIRE_VAT])
        assert summarize_issues(counts) == ["1 missing document(s)", "1 overdue filing(s)"]


class TestRuleWeights:
    """Weights are reported in the breakdown but do not move the counts."""

    def test_total_and_achieved_weight(self):
        rules = [
            RuleSpec(RuleType.DOCUMENT_REQUIRED, "ID", weight=3),
            RuleSpec(RuleType.DOCUMENT_REQUIRED, "Trade License", weight=2),
            RuleSpec(RuleType.FILING_REQUIRED, "VAT", weight=4),
        ]
        documents = [DocumentRecord("ID", NOW + timedelta(days=5))]
        filings = [FilingRecord("VAT", FilingStatus.PENDING, due_date=NOW + timedelta(days=7))]

        counts = evaluate(rules, documents, filings)

        assert counts.breakdown.total_weight == 9
        # Expiring ID keeps full credit, missing license none, upcoming VAT half
        assert counts.breakdown.achieved_weight == 5.0

    def test_weight_does_not_change_counts(self):
        light = evaluate([RuleSpec(RuleType.DOCUMENT_REQUIRED, "ID", weight=1)])
        heavy = evaluate([RuleSpec(RuleType.DOCUMENT_REQUIRED, "ID", weight=50)])
        assert light.missing_count == heavy.missing_count == 1
        assert heavy.breakdown.achieved_weight == 0
