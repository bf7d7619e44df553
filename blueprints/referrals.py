from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from commissions.commission_state import CommissionStateHelper


bp = Blueprint("referrals", __name__, url_prefix="/referrals")


@bp.route("/commissions", methods=["GET"])
@login_required
def my_commissions():
    """A log of all referral commissions the current user has earned."""
    limit = min(request.args.get("limit", 50, type=int) or 50, 500)
    history = CommissionStateHelper.get_user_commission_history(current_user.id, limit=limit)
    total = CommissionStateHelper.get_total_commissions(current_user.id)
    return jsonify({
        "commissions": history,
        "totalEarned": float(total),
    }), 200


@bp.route("/summary", methods=["GET"])
@login_required
def my_summary():
    return jsonify(CommissionStateHelper.get_referral_summary(current_user)), 200
