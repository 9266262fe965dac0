from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from delivery_recon.config import DEFAULT_CUSTOMER_TYPE


class DeliveryReconError(Exception):
    """Base class for errors raised by delivery-recon."""


class WorkbookError(DeliveryReconError):
    """The workbook could not be opened or has no usable sheet."""


class ExtractionError(DeliveryReconError):
    """Record extraction failed for one source file."""

    def __init__(self, path: str, cause: Exception | str) -> None:
        super().__init__(str(cause))
        self.path = path
        self.cause = cause


@dataclass(frozen=True)
class Record:
    """One merchandise line taken from a delivery slip."""

    product_name: str
    quantity: float
    spec: str = ""
    unit: str = ""
    unit_price: float = 0.0
    amount: float = 0.0
    customer: str = ""
    date: str = ""
    delivery_order_no: str = ""
    order_no: str = ""
    source_file: str = ""
    customer_type: str = DEFAULT_CUSTOMER_TYPE

    def __post_init__(self) -> None:
        if not self.product_name.strip():
            raise ValueError("Record requires a product name")
        if self.quantity is None:
            raise ValueError("Record requires a quantity")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ValidationIssue:
    file: str
    message: str
    severity: str = "warning"
    issue_id: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.file, self.message)

    def to_dict(self) -> dict[str, str]:
        return {
            "file": self.file,
            "message": self.message,
            "severity": self.severity,
            "issue_id": self.issue_id,
        }


@dataclass
class SummaryRow:
    product_name: str
    spec: str
    unit: str
    quantity: float = 0.0
    amount: float = 0.0
    average_price: float = 0.0
    customers: list[str] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.product_name, self.spec, self.unit)

    @property
    def customers_label(self) -> str:
        return ", ".join(self.customers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_name": self.product_name,
            "spec": self.spec,
            "unit": self.unit,
            "quantity": self.quantity,
            "amount": self.amount,
            "average_price": self.average_price,
            "customers": self.customers_label,
        }


@dataclass(frozen=True)
class FileBatch:
    """Outcome of extracting one discovered file: records, or the failure."""

    path: str
    customer_type: str
    records: tuple[Record, ...] = ()
    failure: str | None = None

    @property
    def failed(self) -> bool:
        return self.failure is not None


@dataclass
class ReconciliationResult:
    accepted: list[Record] = field(default_factory=list)
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)


@dataclass
class ScanResult:
    success: bool
    message: str
    total_files: int = 0
    valid_files: int = 0
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    items: list[Record] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "total_files": self.total_files,
            "valid_files": self.valid_files,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "items": [record.to_dict() for record in self.items],
        }
