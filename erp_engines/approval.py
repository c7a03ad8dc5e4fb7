"""
Module: erp_engines.approval
Responsibility:
    Decide whether a vendor bill needs approval before it may touch
    inventory and the general ledger.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Rule:
    Approval is required when the policy is enabled, the bill total is
    strictly greater than the threshold and the submitting actor is not an
    administrator.  Administrators' bills are approved on entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from erp_kernel.domain.actor import Actor


class ApprovalOutcome(str, Enum):
    NOT_REQUIRED = "NOT_REQUIRED"
    PENDING = "PENDING"


@dataclass(frozen=True)
class ApprovalDecision:
    outcome: ApprovalOutcome
    reason: str

    @property
    def requires_approval(self) -> bool:
        return self.outcome == ApprovalOutcome.PENDING


def evaluate_bill_approval(
    *,
    total_amount: int,
    actor: Actor,
    enabled: bool,
    threshold: int,
) -> ApprovalDecision:
    if not enabled:
        return ApprovalDecision(ApprovalOutcome.NOT_REQUIRED, "approval policy disabled")
    if total_amount <= threshold:
        return ApprovalDecision(
            ApprovalOutcome.NOT_REQUIRED, f"total {total_amount} within threshold {threshold}",
        )
    if actor.is_admin:
        return ApprovalDecision(ApprovalOutcome.NOT_REQUIRED, "submitted by administrator")
    return ApprovalDecision(
        ApprovalOutcome.PENDING, f"total {total_amount} exceeds threshold {threshold}",
    )
