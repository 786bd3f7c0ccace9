from dataclasses import dataclass, field

from renewal_worker.database.models import PolicyRecord
from renewal_worker.extraction.models import ReceiptExtraction
from renewal_worker.matching.name_matcher import NameMatcher

POLICY_NUMBER_MISMATCH = "Policy number mismatch"
CUSTOMER_NAME_MISMATCH = "Customer name mismatch"

_default_matcher: NameMatcher | None = None


@dataclass(frozen=True)
class VerificationOutcome:
    policy_number_match: bool
    customer_name_match: bool
    failure_reasons: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.policy_number_match and self.customer_name_match


def policy_numbers_match(extracted: str | None, expected: str | None) -> bool:
    """Exact string equality; a missing value never matches."""
    if extracted is None or expected is None:
        return False
    return extracted == expected


def names_match(
    extracted: str | None,
    expected: str | None,
    matcher: NameMatcher | None = None,
) -> bool:
    return (matcher or _shared_matcher()).matches(extracted, expected)


def verify_receipt(
    extraction: ReceiptExtraction,
    policy: PolicyRecord,
    matcher: NameMatcher | None = None,
) -> VerificationOutcome:
    """Check a receipt's extracted fields against the canonical policy."""
    number_ok = policy_numbers_match(extraction.policy_number, policy.policy_number)
    name_ok = names_match(extraction.customer_name, policy.customer_name, matcher)

    reasons: list[str] = []
    if not number_ok:
        reasons.append(POLICY_NUMBER_MISMATCH)
    if not name_ok:
        reasons.append(CUSTOMER_NAME_MISMATCH)

    return VerificationOutcome(
        policy_number_match=number_ok,
        customer_name_match=name_ok,
        failure_reasons=reasons,
    )


def _shared_matcher() -> NameMatcher:
    # One transliterator per process.
    global _default_matcher
    if _default_matcher is None:
        _default_matcher = NameMatcher()
    return _default_matcher
