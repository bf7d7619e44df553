from decimal import Decimal

import pytest

from commissions.approval import ApprovalWorkflow
from commissions.commission_state import CommissionStateHelper


@pytest.fixture
def approved_chain(ctx, admin, make_chain, make_user, make_subscription):
    """root <- mid <- two subscribers, both approved at 460 and 740."""
    root, mid = make_chain(2, prefix="tree")
    first = make_user("first@example.com", referral_code=mid.referral_code)
    second = make_user("second@example.com", referral_code=mid.referral_code)

    workflow = ApprovalWorkflow()
    workflow.approve(make_subscription(first, paid_amount="460.00").id, admin.id)
    workflow.approve(make_subscription(second, paid_amount="740.00", plan_id="max").id, admin.id)
    return root, mid, first, second


def test_totals_per_earner(approved_chain):
    root, mid, first, second = approved_chain

    # mid is level 1 for both (0.5%), root is level 2 (0.4%).
    assert CommissionStateHelper.get_total_commissions(mid.id) == Decimal("6.00")
    assert CommissionStateHelper.get_total_commissions(root.id) == Decimal("4.80")
    assert CommissionStateHelper.get_total_commissions(first.id) == Decimal("0")


def test_history_names_the_paying_user(approved_chain):
    root, mid, first, second = approved_chain

    history = CommissionStateHelper.get_user_commission_history(root.id)

    assert len(history) == 2
    assert {h["fromUserEmail"] for h in history} == {"first@example.com", "second@example.com"}
    assert all(h["level"] == 2 for h in history)


def test_history_limit(approved_chain):
    root, mid, first, second = approved_chain
    assert len(CommissionStateHelper.get_user_commission_history(mid.id, limit=1)) == 1


def test_subscription_commissions_are_ordered_by_level(approved_chain, make_user):
    root, mid, first, second = approved_chain
    subscription = first.subscriptions.first()

    rows = CommissionStateHelper.get_subscription_commissions(subscription.id)

    assert [(r.user_id, r.level) for r in rows] == [(mid.id, 1), (root.id, 2)]


def test_referral_summary(approved_chain):
    root, mid, first, second = approved_chain

    summary = CommissionStateHelper.get_referral_summary(mid)

    assert summary["referralCode"] == mid.referral_code
    assert summary["referralLink"] == f"https://magnus.test/signup?ref={mid.referral_code}"
    assert summary["directReferrals"] == 2
    assert summary["commissionCount"] == 2
    assert summary["totalEarned"] == pytest.approx(6.0)


def test_leaderboard_orders_by_total(approved_chain):
    root, mid, first, second = approved_chain

    board = CommissionStateHelper.get_earnings_leaderboard()

    assert [row["userId"] for row in board] == [mid.id, root.id]
    assert board[0]["email"] == mid.email
    assert board[0]["commissionCount"] == 2
    assert board[1]["totalEarned"] == pytest.approx(4.8)


def test_leaderboard_empty(ctx):
    assert CommissionStateHelper.get_earnings_leaderboard() == []
