"""ORM models. Importing this package registers every table on Base.metadata."""

from lending_kernel.models.alerts import Alert, AlertSeverity, AlertStatus
from lending_kernel.models.audit_log import ComplianceAuditLog
from lending_kernel.models.funds import (
    CommitmentStatus,
    Fund,
    FundCommitment,
    FundLoanAllocation,
    FundStatus,
    FundType,
)
from lending_kernel.models.ingestion import EventIngestRecord
from lending_kernel.models.loans import (
    Inspection,
    InspectionStatus,
    Loan,
    LoanStatus,
    Payment,
    PaymentStatus,
    Property,
)
from lending_kernel.models.processing_log import EventProcessingLog, ProcessingStatus
from lending_kernel.models.snapshots import (
    SNAPSHOT_MODELS,
    SnapshotSet,
    FundSnapshot,
    InspectionSnapshot,
    LoanSnapshot,
    PaymentSnapshot,
)

__all__ = [
    "Alert",
    "AlertSeverity",
    "AlertStatus",
    "ComplianceAuditLog",
    "CommitmentStatus",
    "Fund",
    "FundCommitment",
    "FundLoanAllocation",
    "FundStatus",
    "FundType",
    "EventIngestRecord",
    "Inspection",
    "InspectionStatus",
    "Loan",
    "LoanStatus",
    "Payment",
    "PaymentStatus",
    "Property",
    "EventProcessingLog",
    "ProcessingStatus",
    "FundSnapshot",
    "InspectionSnapshot",
    "LoanSnapshot",
    "PaymentSnapshot",
    "SNAPSHOT_MODELS",
    "SnapshotSet",
]
