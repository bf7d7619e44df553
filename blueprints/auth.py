from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user, login_user, logout_user

from commissions.referral_tree import ReferralTreeHelper
from models import User


#==================================================================================================================

bp = Blueprint("auth", __name__, url_prefix="")


#===========================================================================
#      SIGN UP ROUTE.
#==============================================================================
@bp.route("/api/signup", methods=["POST"])
def signup():
    """
    Create a new user and snapshot their upline from the referral code.
    Expected JSON: {"email", "password", "displayName"?, "referralCode"?}
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({"error": "Invalid or missing JSON body"}), 400

    user = ReferralTreeHelper.register_user(
        email=str(data.get("email") or ""),
        password=str(data.get("password") or ""),
        display_name=str(data.get("displayName") or "").strip() or None,
        referral_code=str(data.get("referralCode") or data.get("ref") or "").strip() or None,
    )
    login_user(user)

    return jsonify({
        "status": "success",
        "message": "Signup successful",
        "user": user.to_dict(),
    }), 201


# --------------------------------------------------
#      Login Route
# --------------------------------------------------
@bp.route("/api/login", methods=["POST"])
def login():
    """
    Authenticate a user.
    Expected JSON:
    {
        "email": "",
        "password": ""
    }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    email = str(data.get("email") or "").strip().lower()
    password = str(data.get("password") or "")

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        current_app.logger.warning(f"Failed login for {email}")
        return jsonify({"error": "Invalid credentials"}), 401

    login_user(user)
    return jsonify({
        "message": "Login successful",
        "user": user.to_dict()
    }), 200


#-----------------------------------------------------------------------------------------------------
@bp.route("/api/logout", methods=["POST"])
def logout():
    """
    Destroy User session
    """
    logout_user()
    return jsonify({"message": "Logged out successfully"}), 200


# --------------------------------------------------
# Check Session (for frontend auto-login)
# --------------------------------------------------
@bp.route("/session", methods=["GET"])
def check_session():
    """Returns current logged-in user data if authenticated"""
    if not current_user.is_authenticated:
        return jsonify({"authenticated": False}), 200

    return jsonify({
        "authenticated": True,
        "user": current_user.to_dict()
    }), 200
