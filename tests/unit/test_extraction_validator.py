from decimal import Decimal

from renewal_worker.extraction.validator import (
    build_receipt_extraction,
    filter_valid_rows,
    normalize_mode,
)


def _row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "policyNumber": "508515995",
        "customerName": "CHHABI DAS",
        "dateOfCommencement": "14/02/2025",
        "mod": "Qly",
        "fup": "05/2025",
        "amount": 8295,
        "commission": 1599.00,
    }
    row.update(overrides)
    return row


class TestFilterValidRows:
    def test_keeps_complete_row(self) -> None:
        rows = filter_valid_rows([_row()])

        assert len(rows) == 1
        assert rows[0].policy_number == "508515995"
        assert rows[0].amount == Decimal("8295")
        assert rows[0].commission == Decimal("1599.0")
        assert rows[0].date_of_commencement == "14/02/2025"

    def test_drops_rows_missing_required_fields(self) -> None:
        raw = [
            _row(policyNumber=None),
            _row(customerName=""),
            _row(mod=None),
            _row(fup="   "),
            _row(),
        ]
        del raw[0]["policyNumber"]

        rows = filter_valid_rows(raw)

        assert len(rows) == 1

    def test_drops_non_positive_amounts(self) -> None:
        rows = filter_valid_rows([_row(amount=0), _row(amount=-5), _row(amount=1)])

        assert [row.amount for row in rows] == [Decimal("1")]

    def test_drops_amounts_that_round_to_zero(self) -> None:
        rows = filter_valid_rows([_row(amount=0.004), _row(amount="0.005")])

        assert [row.amount for row in rows] == [Decimal("0.01")]

    def test_drops_amounts_too_large_to_store(self) -> None:
        rows = filter_valid_rows([_row(amount=1e13), _row(amount="1e300"), _row(amount=100)])

        assert [row.amount for row in rows] == [Decimal("100.00")]

    def test_money_is_rounded_to_cents(self) -> None:
        rows = filter_valid_rows([_row(amount=8295.456, commission=1599.005)])

        assert str(rows[0].amount) == "8295.46"
        assert str(rows[0].commission) == "1599.01"

    def test_oversized_commission_drops_row(self) -> None:
        assert filter_valid_rows([_row(commission=1e13)]) == []

    def test_drops_unparseable_amounts(self) -> None:
        rows = filter_valid_rows([_row(amount="n/a"), _row(amount=None), _row(amount=True)])

        assert rows == []

    def test_accepts_amount_with_thousands_separator(self) -> None:
        rows = filter_valid_rows([_row(amount="8,295")])

        assert rows[0].amount == Decimal("8295")

    def test_total_premium_is_the_amount(self) -> None:
        rows = filter_valid_rows([_row(amount=8295, instPrem=2665)])

        assert rows[0].amount == Decimal("8295")

    def test_missing_commission_defaults_to_zero(self) -> None:
        raw = _row()
        del raw["commission"]

        rows = filter_valid_rows([raw])

        assert rows[0].commission == Decimal("0")

    def test_negative_commission_becomes_zero(self) -> None:
        rows = filter_valid_rows([_row(commission=-10)])

        assert rows[0].commission == Decimal("0")

    def test_numeric_policy_number_is_stringified(self) -> None:
        rows = filter_valid_rows([_row(policyNumber=508515995)])

        assert rows[0].policy_number == "508515995"

    def test_non_object_items_are_dropped(self) -> None:
        rows = filter_valid_rows(["row", 42, None, _row()])

        assert len(rows) == 1

    def test_partial_validity_keeps_source_order(self) -> None:
        raw = [_row(policyNumber="1"), _row(amount=0), _row(policyNumber="3")]

        rows = filter_valid_rows(raw)

        assert [row.policy_number for row in rows] == ["1", "3"]

    def test_multiline_names_are_collapsed(self) -> None:
        rows = filter_valid_rows([_row(customerName="CHHABI\n  DAS")])

        assert rows[0].customer_name == "CHHABI DAS"


class TestNormalizeMode:
    def test_long_forms(self) -> None:
        assert normalize_mode("Quarterly") == "Qly"
        assert normalize_mode("Half-Yearly") == "Hly"
        assert normalize_mode("yearly") == "Yly"
        assert normalize_mode("Monthly") == "Mly"

    def test_abbreviation_case(self) -> None:
        assert normalize_mode("QLY") == "Qly"

    def test_unknown_mode_kept(self) -> None:
        assert normalize_mode("SSS") == "SSS"


class TestBuildReceiptExtraction:
    def test_reads_fields(self) -> None:
        result = build_receipt_extraction(
            {"policyNumber": "508815995", "customerName": "CHHABI DAS", "confidence": "High"}
        )

        assert result.policy_number == "508815995"
        assert result.customer_name == "CHHABI DAS"
        assert result.confidence == "high"

    def test_nulls_stay_none(self) -> None:
        result = build_receipt_extraction(
            {"policyNumber": None, "customerName": None, "confidence": "low"}
        )

        assert result.policy_number is None
        assert result.customer_name is None

    def test_missing_confidence_defaults_to_medium(self) -> None:
        result = build_receipt_extraction({"policyNumber": "1", "customerName": "A"})

        assert result.confidence == "medium"

    def test_evidence_shape(self) -> None:
        result = build_receipt_extraction({"policyNumber": "1", "customerName": "A"})

        assert result.as_evidence() == {
            "policyNumber": "1",
            "customerName": "A",
            "confidence": "medium",
        }
