# commissions/approval.py
from typing import Callable, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from errors import InvalidState, OwnerNotFound, Unauthorized, translate_store_error
from extensions import db
from logger import commissions_logger
from models import Commission, Subscription, SubscriptionStatus, User, UserSubscriptionStatus, utcnow
from commissions.commission_calculation import calculate_commissions, total_commission


class ApprovalWorkflow:
    """
    Admin decisions on pending subscriptions.

    Approval is all-or-nothing: the subscription transition, the owner's plan
    update and the whole commission fan-out are committed in one transaction,
    and the transition itself is a compare-and-set on the `pending_approval`
    status so a subscription can only ever be approved once.
    """

    def __init__(self, session=None, clock: Callable = utcnow):
        self.session = session if session is not None else db.session
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def _get(self, model, ident, path: str):
        try:
            return self.session.get(model, ident)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise translate_store_error(e, path, "get") from e

    def _require_admin(self, acting_admin_id: Optional[str]) -> User:
        admin = self._get(User, acting_admin_id, f"users/{acting_admin_id}") if acting_admin_id else None
        if not admin or not admin.is_admin:
            raise Unauthorized("You must be logged in as an admin to perform this action.")
        return admin

    def _load_pending(self, subscription_id: str, lock: bool = False) -> Subscription:
        try:
            query = self.session.query(Subscription).filter(Subscription.id == subscription_id)
            if lock:
                query = query.with_for_update()
            subscription = query.first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise translate_store_error(e, f"subscriptions/{subscription_id}", "get") from e

        if not subscription:
            raise InvalidState(f"Subscription {subscription_id} not found")
        if subscription.status != SubscriptionStatus.PENDING_APPROVAL.value:
            raise InvalidState(
                f"Subscription {subscription_id} is {subscription.status}, expected pending_approval"
            )
        return subscription

    def _load_owner(self, subscription: Subscription) -> User:
        owner = self._get(User, subscription.user_id, f"users/{subscription.user_id}")
        if not owner:
            raise OwnerNotFound(f"Could not find user {subscription.user_id} for subscription {subscription.id}")
        return owner

    def _claim_pending(self, subscription_id: str, values: dict) -> int:
        """Compare-and-set away from pending_approval; returns the number of rows moved (0 or 1)."""
        return self.session.query(Subscription).filter(
            Subscription.id == subscription_id,
            Subscription.status == SubscriptionStatus.PENDING_APPROVAL.value,
        ).update(values, synchronize_session=False)

    # ------------------------------------------------------------------
    # Approve
    # ------------------------------------------------------------------
    def approve(self, subscription_id: str, acting_admin_id: str) -> List[Commission]:
        admin = self._require_admin(acting_admin_id)
        subscription = self._load_pending(subscription_id, lock=True)
        owner = self._load_owner(subscription)

        now = self.clock()
        plan_id = subscription.plan_id
        paid_amount = subscription.paid_amount
        entries = calculate_commissions(paid_amount, owner.upline)

        write_set = {
            "subscription": f"subscriptions/{subscription_id}",
            "user": f"users/{owner.id}",
            "commissions": [f"users/{entry.user_id}/commissions" for entry in entries],
        }

        try:
            claimed = self._claim_pending(subscription_id, {
                Subscription.status: SubscriptionStatus.ACTIVE.value,
                Subscription.approved_at: now,
                Subscription.approved_by: admin.id,
            })

            if claimed == 1:
                owner.subscription_status = UserSubscriptionStatus.ACTIVE.value
                owner.plan_id = plan_id

                commissions = [
                    Commission(
                        user_id=entry.user_id,
                        from_user_id=owner.id,
                        subscription_id=subscription_id,
                        amount=entry.amount,
                        level=entry.level,
                        rate=entry.rate,
                        created_at=now,
                    )
                    for entry in entries
                ]
                self.session.add_all(commissions)
                self.session.commit()
            else:
                self.session.rollback()

        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Approval batch for subscription {subscription_id} failed: {str(e)}")
            raise translate_store_error(e, f"subscriptions/{subscription_id}", "write", write_set) from e

        if claimed != 1:
            # Another approver won the race between our read and our write.
            raise InvalidState(f"Subscription {subscription_id} is no longer pending_approval")

        total = total_commission(entries)
        current_app.logger.info(
            f"Subscription {subscription_id} approved by {admin.id}: user {owner.id} now on {plan_id}, "
            f"{len(commissions)} commissions totalling {total}"
        )
        for commission in commissions:
            commissions_logger.info(
                f"COMMISSION_AUDIT: Subscription#{subscription_id} | From#{owner.id} | "
                f"Earner#{commission.user_id} | Level{commission.level} | Rate{commission.rate} | "
                f"Amount{commission.amount}"
            )
        return commissions

    # ------------------------------------------------------------------
    # Reject
    # ------------------------------------------------------------------
    def _update(self, path: str, apply: Callable[[], Optional[bool]], data: dict) -> bool:
        """Run one write and commit it. `apply` returning False means nothing matched: roll back instead."""
        try:
            if apply() is False:
                self.session.rollback()
                return False
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise translate_store_error(e, path, "update", data) from e
        return True

    def reject(self, subscription_id: str, acting_admin_id: str) -> None:
        """
        Two sequential writes, each committed on its own: the subscription is
        rejected first, then the owner's status. A failure in the second write
        leaves the first in place.

        The first write is the same compare-and-set as approval, so a
        subscription approved after our read is never turned into a rejection.
        """
        admin = self._require_admin(acting_admin_id)
        subscription = self._load_pending(subscription_id)
        owner = self._load_owner(subscription)
        now = self.clock()

        def reject_subscription():
            return self._claim_pending(subscription_id, {
                Subscription.status: SubscriptionStatus.REJECTED.value,
                Subscription.rejected_at: now,
                Subscription.rejected_by: admin.id,
            }) == 1

        def reject_owner():
            owner.subscription_status = UserSubscriptionStatus.REJECTED.value

        claimed = self._update(
            f"subscriptions/{subscription_id}",
            reject_subscription,
            {"status": SubscriptionStatus.REJECTED.value},
        )
        if not claimed:
            raise InvalidState(f"Subscription {subscription_id} is no longer pending_approval")

        self._update(
            f"users/{owner.id}",
            reject_owner,
            {"subscriptionStatus": UserSubscriptionStatus.REJECTED.value},
        )

        current_app.logger.info(f"Subscription {subscription_id} rejected by {admin.id}")
