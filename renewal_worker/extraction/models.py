import base64
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class BinaryPayload:
    """Document bytes handed to the extraction model."""

    mime_type: str
    data: bytes

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64()}"


@dataclass(frozen=True)
class ExtractedPolicyRow:
    """One validated row of a premium due list."""

    policy_number: str
    customer_name: str
    mode: str
    fup: str
    amount: Decimal
    commission: Decimal = Decimal("0")
    date_of_commencement: str | None = None


@dataclass(frozen=True)
class ReceiptExtraction:
    """Fields read off a payment receipt; unreadable fields are None."""

    policy_number: str | None
    customer_name: str | None
    confidence: str = "medium"

    def as_evidence(self) -> dict[str, str | None]:
        return {
            "policyNumber": self.policy_number,
            "customerName": self.customer_name,
            "confidence": self.confidence,
        }
