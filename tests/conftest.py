import json
import os
import tempfile

os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="magnus-logs-"))

import pytest
import requests

from app import create_app
from blueprints.plan_helpers import seed_default_plans
from commissions.referral_tree import ReferralTreeHelper
from commissions.validation import submit_subscription
from config import TestingConfig
from extensions import db


PASSWORD = "secret-pass"


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        seed_default_plans()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Service-level tests run inside one app context."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user():
    def _make(email, referral_code=None, is_admin=False, password=PASSWORD):
        return ReferralTreeHelper.register_user(
            email=email,
            password=password,
            referral_code=referral_code,
            is_admin=is_admin,
        )
    return _make


@pytest.fixture
def make_chain(make_user):
    """Users u0 <- u1 <- ... <- u{n-1}; each one referred by the previous. Root first."""
    def _make(n, prefix="chain"):
        users = []
        referral_code = None
        for index in range(n):
            user = make_user(f"{prefix}{index}@example.com", referral_code=referral_code)
            referral_code = user.referral_code
            users.append(user)
        return users
    return _make


@pytest.fixture
def make_subscription():
    def _make(user, paid_amount="460.00", plan_id="growth", proof="https://proofs.example.com/receipt.png"):
        return submit_subscription(user, {
            "planId": plan_id,
            "paidAmount": paid_amount,
            "paymentProofUrl": proof,
        })
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", is_admin=True)


def login(client, email, password=PASSWORD):
    response = client.post("/api/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.get_json()
    return response


# ---------------------------------------------------------------------------
# Exchange transport fakes
# ---------------------------------------------------------------------------

def make_response(status=200, body=None, raw=None):
    response = requests.Response()
    response.status_code = status
    if raw is not None:
        response._content = raw.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    response.encoding = "utf-8"
    return response


class FakeSession:
    """Stands in for requests.Session: replays queued responses, records calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected call: {method} {url}")
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def fake_session():
    return FakeSession()
