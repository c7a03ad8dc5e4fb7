"""Tests for the vendor bill approval rule."""

import pytest

from erp_engines.approval import ApprovalOutcome, evaluate_bill_approval
from erp_kernel.domain.actor import Actor, Role

CLERK = Actor("clerk", Role.ACCOUNTANT)
ADMIN = Actor("boss", Role.ADMIN)


class TestEvaluateBillApproval:

    def test_over_threshold_needs_approval(self):
        decision = evaluate_bill_approval(total_amount=1_001, actor=CLERK, enabled=True, threshold=1_000)
        assert decision.outcome == ApprovalOutcome.PENDING
        assert decision.requires_approval

    def test_threshold_itself_is_not_over(self):
        decision = evaluate_bill_approval(total_amount=1_000, actor=CLERK, enabled=True, threshold=1_000)
        assert decision.outcome == ApprovalOutcome.NOT_REQUIRED

    def test_admin_bypasses_approval(self):
        decision = evaluate_bill_approval(total_amount=5_000, actor=ADMIN, enabled=True, threshold=1_000)
        assert not decision.requires_approval

    @pytest.mark.parametrize("actor", [CLERK, ADMIN])
    def test_disabled_policy(self, actor):
        decision = evaluate_bill_approval(total_amount=10**12, actor=actor, enabled=False, threshold=0)
        assert decision.outcome == ApprovalOutcome.NOT_REQUIRED
