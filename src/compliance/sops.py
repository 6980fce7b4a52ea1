"""Master playbook (SOP) catalog and the actions it governs."""
from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings

SOP_MASTER_KEY = "SOPMASTER"


@dataclass(frozen=True)
class MasterSOP:
    number: int
    title: str
    phase: str

    @property
    def code(self) -> str:
        return f"SOP-{self.number:02d}"


MASTER_SOPS = (
    MasterSOP(1, "Commission Submission & Approval", "Revenue Validation & Rep Compensation"),
    MasterSOP(2, "Job Closeout & Final Invoice", "Completion → Billing Control"),
    MasterSOP(3, "Supplement Identification & Submission", "Insurance Margin Protection"),
    MasterSOP(4, "Playbook Acknowledgment & Enforcement", "Control & Accountability"),
    MasterSOP(5, "Roles & Authority Boundaries", "Permission Control"),
    MasterSOP(6, "User Onboarding & Offboarding", "Access Lifecycle"),
    MasterSOP(7, "Communication & Approvals", "Decision Documentation"),
    MasterSOP(8, "Data Integrity & Status Control", "System Truth Protection"),
    MasterSOP(9, "Commission Payroll Sync", "Payroll Execution"),
    MasterSOP(10, "Production Scheduling & Readiness", "Execution Gate"),
)

MASTER_SOP_COUNT = len(MASTER_SOPS)

# Actions blocked until the current playbook version is acknowledged.
GOVERNED_ACTIONS = (
    "commission_submission",
    "commission_approval",
    "production_scheduling",
    "supplement_submission",
    "invoice_issuance",
    "job_status_change",
)


def current_sop_version() -> str:
    return getattr(settings, "SOP_MASTER_VERSION", "2025-01-30-v1")


def get_master_sop(number: int) -> MasterSOP:
    for sop in MASTER_SOPS:
        if sop.number == number:
            return sop
    raise ValueError(f"SOP number must be between 1 and {MASTER_SOP_COUNT}.")
