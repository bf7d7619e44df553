from decimal import Decimal
from typing import Any, Dict, List

from flask import current_app
from sqlalchemy import func

from extensions import db
from models import Commission, User


class CommissionStateHelper:
    """Read side of the commission ledger: history, totals and reporting"""

    @staticmethod
    def get_user_commission_history(user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        commissions = Commission.query.filter_by(user_id=user_id).order_by(
            Commission.created_at.desc(), Commission.level.asc()
        ).limit(limit).all()

        from_ids = {c.from_user_id for c in commissions}
        emails = {}
        if from_ids:
            emails = dict(
                db.session.query(User.id, User.email).filter(User.id.in_(from_ids)).all()
            )

        history = []
        for commission in commissions:
            entry = commission.to_dict()
            entry["fromUserEmail"] = emails.get(commission.from_user_id)
            history.append(entry)
        return history

    @staticmethod
    def get_total_commissions(user_id: str) -> Decimal:
        total = db.session.query(func.sum(Commission.amount)).filter(
            Commission.user_id == user_id
        ).scalar()
        return Decimal(str(total)) if total is not None else Decimal('0')

    @staticmethod
    def get_subscription_commissions(subscription_id: str) -> List[Commission]:
        return Commission.query.filter_by(subscription_id=subscription_id).order_by(
            Commission.level.asc()
        ).all()

    @staticmethod
    def get_referral_summary(user: User) -> Dict[str, Any]:
        base_url = current_app.config.get("APP_BASE_URL", "").rstrip("/")
        direct_referrals = User.query.filter_by(referrer_id=user.id).count()
        total = CommissionStateHelper.get_total_commissions(user.id)

        return {
            "referralCode": user.referral_code,
            "referralLink": f"{base_url}/signup?ref={user.referral_code}",
            "directReferrals": direct_referrals,
            "commissionCount": Commission.query.filter_by(user_id=user.id).count(),
            "totalEarned": float(total),
        }

    @staticmethod
    def get_earnings_leaderboard(limit: int = 100) -> List[Dict[str, Any]]:
        """Commission totals per earner, largest first (admin referrals view)."""
        rows = db.session.query(
            Commission.user_id,
            func.count(Commission.id),
            func.sum(Commission.amount),
        ).group_by(Commission.user_id).order_by(func.sum(Commission.amount).desc()).limit(limit).all()

        emails = {}
        if rows:
            emails = dict(
                db.session.query(User.id, User.email).filter(User.id.in_([r[0] for r in rows])).all()
            )

        return [
            {
                "userId": user_id,
                "email": emails.get(user_id),
                "commissionCount": count,
                "totalEarned": float(total or 0),
            }
            for user_id, count, total in rows
        ]
