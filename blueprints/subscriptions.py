#======================================================================================================
#
#   SUBSCRIPTION SUBMISSION - manual payment with proof, awaiting admin approval
#
#======================================================================================================
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from commissions.validation import submit_subscription
from extensions import db
from models import AppSetting, Plan, Subscription


bp = Blueprint("subscriptions", __name__)


@bp.route("/plans", methods=["GET"])
def list_plans():
    plans = Plan.query.filter_by(is_active=True).order_by(Plan.price.asc()).all()
    return jsonify({"plans": [plan.to_dict() for plan in plans]}), 200


@bp.route("/payment-details", methods=["GET"])
@login_required
def payment_details():
    """Where to send the manual payment (configured by admins)."""
    setting = db.session.get(AppSetting, "payment_details")
    return jsonify({"paymentDetails": setting.value if setting else {}}), 200


@bp.route("/subscriptions", methods=["POST"])
@login_required
def create_subscription():
    data = request.get_json(silent=True)
    subscription = submit_subscription(current_user, data)
    return jsonify({"subscription": subscription.to_dict()}), 201


@bp.route("/subscriptions/me", methods=["GET"])
@login_required
def my_subscriptions():
    subscriptions = Subscription.query.filter_by(user_id=current_user.id).order_by(
        Subscription.created_at.desc()
    ).all()
    return jsonify({
        "subscriptionStatus": current_user.subscription_status,
        "planId": current_user.plan_id,
        "subscriptions": [s.to_dict() for s in subscriptions],
    }), 200
