from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from errors import InvalidState, ValidationError, translate_store_error
from extensions import db
from models import Plan, Subscription, SubscriptionStatus, User, UserSubscriptionStatus


class SubscriptionValidationHelper:
    """Validation at the subscription-creation boundary."""

    REQUIRED_FIELDS = ("planId", "paidAmount", "paymentProofUrl")

    CENT = Decimal("0.01")
    # Numeric(18, 2): 16 integer digits
    MAX_PAID_AMOUNT = Decimal("9999999999999999.99")

    @staticmethod
    def parse_paid_amount(value) -> Decimal:
        """Positive amount in whole cents. Rounding to cents happens before the sign check."""
        if isinstance(value, bool) or value is None or value == "":
            raise ValidationError("paidAmount must be a positive number")
        try:
            amount = Decimal(str(value))
            if not amount.is_finite():
                raise ValidationError("paidAmount must be a positive number")
            amount = amount.quantize(SubscriptionValidationHelper.CENT)
        except (InvalidOperation, ValueError):
            raise ValidationError("paidAmount must be a positive number")

        if amount <= 0:
            raise ValidationError("paidAmount must be at least 0.01")
        if amount > SubscriptionValidationHelper.MAX_PAID_AMOUNT:
            raise ValidationError("paidAmount is too large")
        return amount

    @staticmethod
    def parse_exchange(value) -> str:
        """Payment method label; defaults to bitcoin."""
        if value in (None, ""):
            return "bitcoin"
        if not isinstance(value, str) or not value.strip() or len(value.strip()) > 50:
            raise ValidationError("exchange must be a short text label")
        return value.strip().lower()

    @staticmethod
    def validate_subscription_request(data: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise ValidationError("Invalid or missing JSON body")

        missing = [name for name in SubscriptionValidationHelper.REQUIRED_FIELDS if data.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        plan = db.session.get(Plan, str(data["planId"]))
        if not plan or not plan.is_active:
            raise ValidationError(f"Unknown plan: {data['planId']}")

        proof = str(data["paymentProofUrl"]).strip()
        if not proof:
            raise ValidationError("A payment proof is required")

        return {
            "plan": plan,
            "paid_amount": SubscriptionValidationHelper.parse_paid_amount(data["paidAmount"]),
            "payment_proof_url": proof,
            "exchange": SubscriptionValidationHelper.parse_exchange(data.get("exchange")),
        }


def submit_subscription(user: User, data: Dict[str, Any]) -> Subscription:
    """Create a pending subscription and flag the user as pending."""
    validated = SubscriptionValidationHelper.validate_subscription_request(data)

    pending = Subscription.query.filter_by(
        user_id=user.id,
        status=SubscriptionStatus.PENDING_APPROVAL.value,
    ).first()
    if pending:
        raise InvalidState(f"Subscription {pending.id} is already awaiting approval")

    subscription = Subscription(
        user_id=user.id,
        plan_id=validated["plan"].id,
        status=SubscriptionStatus.PENDING_APPROVAL.value,
        paid_amount=validated["paid_amount"],
        payment_proof_url=validated["payment_proof_url"],
        exchange=validated["exchange"],
    )

    try:
        db.session.add(subscription)
        user.subscription_status = UserSubscriptionStatus.PENDING.value
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise translate_store_error(e, "subscriptions", "create", {"planId": validated["plan"].id}) from e

    current_app.logger.info(
        f"Subscription {subscription.id} submitted by user {user.id}: "
        f"plan={subscription.plan_id}, paid={subscription.paid_amount}"
    )
    return subscription
