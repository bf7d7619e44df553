# models.py - subscription, referral and commission models
import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from flask_login import UserMixin
from sqlalchemy import UniqueConstraint, Index, text
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ===========================================================
# ENUM DEFINITIONS
# ===========================================================

class SubscriptionStatus(enum.Enum):
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    REJECTED = "rejected"


class UserSubscriptionStatus(enum.Enum):
    INACTIVE = "inactive"
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"


class PlanId(enum.Enum):
    STARTER = "starter"
    GROWTH = "growth"
    MAX = "max"


# ===========================================================
# BASE MIXIN FOR COMMON FIELDS
# ===========================================================

class BaseMixin:
    """Provides created_at and updated_at timestamps to inheriting models."""
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# ===========================================================
# USER MODELS
# ===========================================================

class User(db.Model, BaseMixin, UserMixin):
    """Platform user. `upline` is a snapshot of up to five ancestors taken at signup."""
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    email = db.Column(db.String(120), unique=True, nullable=False)
    display_name = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)

    referral_code = db.Column(db.String(20), unique=True, nullable=False)
    referrer_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True, index=True)
    upline = db.Column(db.JSON, nullable=False, default=list)

    subscription_status = db.Column(
        db.String(20),
        nullable=False,
        default=UserSubscriptionStatus.INACTIVE.value,
        server_default=text("'inactive'"),
    )
    plan_id = db.Column(db.String(20), db.ForeignKey('plans.id'), nullable=True)
    profit_share = db.Column(db.Numeric(5, 2), nullable=False, default=Decimal("3.5"))
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    subscriptions = db.relationship(
        'Subscription',
        back_populates='user',
        foreign_keys='Subscription.user_id',
        lazy='dynamic',
    )
    commissions = db.relationship(
        'Commission',
        back_populates='earner',
        foreign_keys='Commission.user_id',
        lazy='dynamic',
    )

    __table_args__ = (
        Index('idx_user_referral_code', 'referral_code'),
    )

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "displayName": self.display_name,
            "referralCode": self.referral_code,
            "referrerId": self.referrer_id,
            "upline": list(self.upline or []),
            "subscriptionStatus": self.subscription_status,
            "planId": self.plan_id,
            "profitShare": float(self.profit_share) if self.profit_share is not None else None,
            "isAdmin": bool(self.is_admin),
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.id} {self.email}>'


# ===========================================================
# PLANS & SUBSCRIPTIONS
# ===========================================================

class Plan(db.Model, BaseMixin):
    __tablename__ = 'plans'

    id = db.Column(db.String(20), primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    price = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    description = db.Column(db.Text)
    features = db.Column(db.JSON, nullable=False, default=list)
    popular = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "description": self.description,
            "features": list(self.features or []),
            "popular": bool(self.popular),
            "isActive": bool(self.is_active),
        }


class Subscription(db.Model, BaseMixin):
    """A manually paid plan request awaiting (or past) admin review."""
    __tablename__ = 'subscriptions'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    plan_id = db.Column(db.String(20), db.ForeignKey('plans.id'), nullable=False)
    status = db.Column(
        db.String(20),
        nullable=False,
        default=SubscriptionStatus.PENDING_APPROVAL.value,
        index=True,
    )
    paid_amount = db.Column(db.Numeric(18, 2), nullable=False)
    payment_proof_url = db.Column(db.Text, nullable=False)
    exchange = db.Column(db.String(50), default='bitcoin')

    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_by = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_by = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)

    user = db.relationship('User', back_populates='subscriptions', foreign_keys=[user_id])
    plan = db.relationship('Plan')

    __table_args__ = (
        db.CheckConstraint('paid_amount > 0', name='chk_paid_amount_positive'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "planId": self.plan_id,
            "status": self.status,
            "paidAmount": float(self.paid_amount),
            "paymentProofUrl": self.payment_proof_url,
            "exchange": self.exchange,
            "createdAt": _iso(self.created_at),
            "approvedAt": _iso(self.approved_at),
            "approvedBy": self.approved_by,
            "rejectedAt": _iso(self.rejected_at),
            "rejectedBy": self.rejected_by,
        }


# ===========================================================
# COMMISSION LEDGER
# ===========================================================

class Commission(db.Model):
    """Append-only ledger entry credited to an upline ancestor on approval."""
    __tablename__ = 'commissions'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    from_user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    subscription_id = db.Column(db.String(36), db.ForeignKey('subscriptions.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(18, 6), nullable=False)
    level = db.Column(db.Integer, nullable=False)
    rate = db.Column(db.Numeric(6, 4), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    earner = db.relationship('User', foreign_keys=[user_id], back_populates='commissions')
    from_user = db.relationship('User', foreign_keys=[from_user_id])

    __table_args__ = (
        UniqueConstraint('subscription_id', 'user_id', 'level', name='uq_commission_subscription_user_level'),
        db.CheckConstraint('level >= 1 AND level <= 5', name='chk_commission_level_range'),
        Index('idx_commission_user_created', 'user_id', 'created_at'),
    )

    @property
    def path(self):
        return f"users/{self.user_id}/commissions/{self.id}"

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "fromUserId": self.from_user_id,
            "subscriptionId": self.subscription_id,
            "amount": float(self.amount),
            "level": self.level,
            "rate": float(self.rate),
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Commission {self.user_id} L{self.level} {self.amount}>'


# ===========================================================
# APP-LEVEL SETTINGS
# ===========================================================

class AppSetting(db.Model, BaseMixin):
    """Key/value settings document (payment details shown to paying users, etc.)."""
    __tablename__ = 'settings'

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.JSON, nullable=False, default=dict)

    @staticmethod
    def as_dict():
        return {row.key: row.value for row in AppSetting.query.order_by(AppSetting.key).all()}
