from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

OBJECT_FINALIZED = "object.finalized"
POLICY_DELETED = "policy.deleted"


class PolicyStatus(str, Enum):
    """Lifecycle of a renewal-period policy record."""

    PENDING = "pending"
    VERIFIED = "verified"


@dataclass
class PipelineEventRecord:
    """Represents a row from the pipeline_events table."""

    id: int
    event_type: str
    bucket: str = ""
    object_name: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    status: str = "pending"
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class PolicyRecord:
    """Represents a row from the policies table."""

    id: str
    policy_number: str
    customer_name: str
    amount: Decimal
    created_at: int
    status: PolicyStatus = PolicyStatus.PENDING
    commission: Decimal = Decimal("0")
    mode: str | None = None
    fup: str | None = None
    date_of_commencement: str | None = None
    due_date: str | None = None
    receipt_url: str | None = None
    uploaded_by: str | None = None
    uploaded_at: int | None = None
    verified_at: int | None = None
    verification_method: str | None = None
    extracted_data: dict[str, Any] | None = None
    source_upload_id: str | None = None
