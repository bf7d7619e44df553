#======================================================================================
#
# ADMIN API - subscription review, users, plans, settings, referral reporting
#
#=======================================================================================
from decimal import Decimal, InvalidOperation
from functools import wraps

from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from commissions.approval import ApprovalWorkflow
from commissions.commission_state import CommissionStateHelper
from commissions.config import CommissionConfigHelper
from errors import NotFound, ValidationError, translate_store_error
from extensions import db
from models import AppSetting, Plan, PlanId, Subscription, SubscriptionStatus, User, UserSubscriptionStatus


def admin_required(f):
    """
    Restrict a route to authenticated admins.
    - 401 when nobody is logged in.
    - 403 when the logged-in user is not an admin.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"error": "Authentication required"}), 401
        if not current_user.is_admin:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)

    return decorated_function


admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _json_object():
    """The request body as a dict; an empty body counts as {}."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _commit(path, operation, data=None):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise translate_store_error(e, path, operation, data) from e


#============================================================================================================
#     ----------------------------SUBSCRIPTION REVIEW-------------------------------------------
#============================================================================================================

@admin_bp.route("/subscriptions", methods=["GET"])
@admin_required
def list_subscriptions():
    status = request.args.get("status")
    query = Subscription.query
    if status:
        allowed = {s.value for s in SubscriptionStatus}
        if status not in allowed:
            raise ValidationError(f"Unknown status {status}; expected one of {sorted(allowed)}")
        query = query.filter_by(status=status)

    subscriptions = query.order_by(Subscription.created_at.desc()).all()
    user_ids = {s.user_id for s in subscriptions}
    users = {u.id: u for u in User.query.filter(User.id.in_(user_ids)).all()} if user_ids else {}

    result = []
    for subscription in subscriptions:
        entry = subscription.to_dict()
        owner = users.get(subscription.user_id)
        entry["userEmail"] = owner.email if owner else None
        result.append(entry)

    return jsonify({"subscriptions": result}), 200


@admin_bp.route("/subscriptions/<subscription_id>/approve", methods=["POST"])
@admin_required
def approve_subscription(subscription_id):
    commissions = ApprovalWorkflow().approve(subscription_id, current_user.id)
    return jsonify({
        "status": "success",
        "message": "Subscription is now active and commissions have been distributed.",
        "subscriptionId": subscription_id,
        "commissions": [c.to_dict() for c in commissions],
    }), 200


@admin_bp.route("/subscriptions/<subscription_id>/reject", methods=["POST"])
@admin_required
def reject_subscription(subscription_id):
    ApprovalWorkflow().reject(subscription_id, current_user.id)
    return jsonify({
        "status": "success",
        "message": "Subscription has been rejected.",
        "subscriptionId": subscription_id,
    }), 200


#============================================================================================================
#     ----------------------------USERS-------------------------------------------
#============================================================================================================

@admin_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@admin_bp.route("/users/<user_id>/profit-share", methods=["PATCH"])
@admin_required
def update_profit_share(user_id):
    data = _json_object()
    raw = data.get("profitShare")
    try:
        if raw is None or isinstance(raw, bool):
            raise InvalidOperation
        profit_share = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValidationError("Please enter a valid number.")
    if not profit_share.is_finite() or profit_share < 0 or profit_share > 100:
        raise ValidationError("Profit share must be between 0 and 100.")

    user = db.session.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")

    user.profit_share = profit_share
    _commit(f"users/{user_id}", "update", {"profitShare": str(profit_share)})
    current_app.logger.info(f"Profit share for {user_id} set to {profit_share} by {current_user.id}")
    return jsonify({"user": user.to_dict()}), 200


@admin_bp.route("/users/<user_id>/suspend", methods=["POST"])
@admin_required
def suspend_user(user_id):
    """Drop the user back to inactive; they must subscribe again to regain access."""
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")
    if user.is_admin:
        raise ValidationError("Admin accounts cannot be suspended")

    user.subscription_status = UserSubscriptionStatus.INACTIVE.value
    _commit(f"users/{user_id}", "update", {"subscriptionStatus": UserSubscriptionStatus.INACTIVE.value})
    current_app.logger.info(f"User {user_id} suspended by {current_user.id}")
    return jsonify({"user": user.to_dict()}), 200


#============================================================================================================
#     ----------------------------PLANS-------------------------------------------
#============================================================================================================

def _plan_fields(data, partial=False):
    fields = {}
    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("Plan name is required.")
        fields["name"] = name
    if "price" in data or not partial:
        try:
            price = Decimal(str(data.get("price")))
        except (InvalidOperation, ValueError):
            raise ValidationError("Price must be a positive number.")
        if not price.is_finite() or price < 0:
            raise ValidationError("Price must be a positive number.")
        fields["price"] = price
    if "description" in data:
        fields["description"] = data.get("description")
    if "features" in data:
        features = data.get("features") or []
        if not isinstance(features, list):
            raise ValidationError("features must be a list")
        fields["features"] = [str(f) for f in features]
    if "popular" in data:
        fields["popular"] = bool(data.get("popular"))
    if "isActive" in data:
        fields["is_active"] = bool(data.get("isActive"))
    return fields


@admin_bp.route("/plans", methods=["GET"])
@admin_required
def list_plans():
    plans = Plan.query.order_by(Plan.price.asc()).all()
    return jsonify({"plans": [p.to_dict() for p in plans]}), 200


@admin_bp.route("/plans", methods=["POST"])
@admin_required
def create_plan():
    data = _json_object()
    plan_id = str(data.get("id") or "").strip().lower()
    allowed = {p.value for p in PlanId}
    if plan_id not in allowed:
        raise ValidationError(f"Plan id must be one of {sorted(allowed)}")
    if db.session.get(Plan, plan_id):
        raise ValidationError(f"Plan {plan_id} already exists")

    plan = Plan(id=plan_id, **_plan_fields(data))
    db.session.add(plan)
    _commit(f"plans/{plan_id}", "create", {"name": plan.name})
    return jsonify({"plan": plan.to_dict()}), 201


@admin_bp.route("/plans/<plan_id>", methods=["PUT"])
@admin_required
def update_plan(plan_id):
    plan = db.session.get(Plan, plan_id)
    if not plan:
        raise NotFound(f"Plan {plan_id} not found")

    data = _json_object()
    for key, value in _plan_fields(data, partial=True).items():
        setattr(plan, key, value)
    _commit(f"plans/{plan_id}", "update")
    return jsonify({"plan": plan.to_dict()}), 200


@admin_bp.route("/plans/<plan_id>", methods=["DELETE"])
@admin_required
def delete_plan(plan_id):
    plan = db.session.get(Plan, plan_id)
    if not plan:
        raise NotFound(f"Plan {plan_id} not found")

    in_use = Subscription.query.filter_by(plan_id=plan_id).first() is not None
    if in_use:
        # Keep the row for subscriptions that reference it.
        plan.is_active = False
    else:
        db.session.delete(plan)
    _commit(f"plans/{plan_id}", "delete")
    return jsonify({"status": "success", "deactivated": in_use}), 200


#============================================================================================================
#     ----------------------------SETTINGS-------------------------------------------
#============================================================================================================

@admin_bp.route("/settings", methods=["GET"])
@admin_required
def get_settings():
    return jsonify({"settings": AppSetting.as_dict()}), 200


@admin_bp.route("/settings", methods=["PUT"])
@admin_required
def update_settings():
    """Merge the given keys into the settings document."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise ValidationError("Settings must be a non-empty JSON object")

    for key, value in data.items():
        setting = db.session.get(AppSetting, key)
        if setting:
            setting.value = value
        else:
            db.session.add(AppSetting(key=key, value=value))
    _commit("app/settings", "write", data)
    return jsonify({"settings": AppSetting.as_dict()}), 200


#============================================================================================================
#     ----------------------------REFERRALS-------------------------------------------
#============================================================================================================

@admin_bp.route("/referrals", methods=["GET"])
@admin_required
def referral_report():
    return jsonify({
        "earners": CommissionStateHelper.get_earnings_leaderboard(),
        "policy": CommissionConfigHelper.get_distribution_summary(),
    }), 200
