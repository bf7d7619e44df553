import base64
import logging
import re
import uuid
from decimal import Decimal
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from errors import ValidationError, translate_store_error
from extensions import db
from models import User, UserSubscriptionStatus
from commissions.config import CommissionConfigHelper


logger = logging.getLogger(__name__)

REFERRAL_CODE_LENGTH = 8
MAX_ID_ATTEMPTS = 5


def validate_email(email):
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email or "") is not None


def derive_referral_code(user_id: str) -> str:
    """Referral code is a pure function of the user id."""
    return base64.urlsafe_b64encode(user_id.encode("utf-8")).decode("ascii")[:REFERRAL_CODE_LENGTH]


def build_upline(referrer: Optional[User]) -> List[str]:
    """
    Snapshot of the new user's ancestors: the referrer, then the referrer's own
    upline, nearest first, capped at MAX_LEVEL. Never recomputed afterwards.
    """
    if referrer is None:
        return []
    inherited = list(referrer.upline or [])[:CommissionConfigHelper.MAX_LEVEL - 1]
    return [referrer.id] + inherited


class ReferralTreeHelper:

    @staticmethod
    def find_referrer(referral_code: Optional[str]) -> Optional[User]:
        if not referral_code:
            return None
        referrer = User.query.filter_by(referral_code=referral_code.strip()).first()
        if not referrer:
            logger.warning("Referrer code not found: %s", referral_code)
        return referrer

    @staticmethod
    def _allocate_identity():
        """Pick a fresh id whose derived referral code is not taken yet."""
        for _ in range(MAX_ID_ATTEMPTS):
            user_id = str(uuid.uuid4())
            code = derive_referral_code(user_id)
            if not User.query.filter_by(referral_code=code).first():
                return user_id, code
        raise ValidationError("Could not allocate a unique referral code, please retry")

    @staticmethod
    def register_user(email: str, password: str, display_name: Optional[str] = None,
                      referral_code: Optional[str] = None, is_admin: bool = False) -> User:
        """
        Create a user and attach them under the owner of `referral_code`.
        Unknown referral codes are ignored (the user signs up without a referrer).
        """
        email = (email or "").strip().lower()
        if not validate_email(email):
            raise ValidationError("A valid email address is required")
        if not password or len(password) < 6:
            raise ValidationError("The password is too weak. Please use at least 6 characters.")
        if User.query.filter_by(email=email).first():
            raise ValidationError("This email address is already in use.")

        referrer = ReferralTreeHelper.find_referrer(referral_code)
        user_id, code = ReferralTreeHelper._allocate_identity()

        profit_share = Decimal(str(current_app.config.get("DEFAULT_PROFIT_SHARE", "3.5")))

        user = User(
            id=user_id,
            email=email,
            display_name=display_name or email.split("@")[0],
            referral_code=code,
            referrer_id=referrer.id if referrer else None,
            upline=build_upline(referrer),
            subscription_status=UserSubscriptionStatus.INACTIVE.value,
            profit_share=profit_share,
            is_admin=bool(is_admin),
        )
        user.set_password(password)

        try:
            db.session.add(user)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise translate_store_error(e, f"users/{user_id}", "create", {"email": email}) from e

        current_app.logger.info(
            f"Registered user {user.id} (referrer={user.referrer_id}, upline depth={len(user.upline)})"
        )
        return user

    @staticmethod
    def get_direct_referrals(user_id: str) -> List[User]:
        return User.query.filter_by(referrer_id=user_id).order_by(User.created_at.asc()).all()
