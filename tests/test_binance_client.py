from decimal import Decimal
from urllib.parse import parse_qsl, urlsplit

import pytest
import requests

from exchange.binance_client import (
    ACCOUNT_PATH,
    TICKER_PRICE_PATH,
    USER_ASSET_PATH,
    ExchangeVerificationClient,
    classify_error,
    sign_query,
)
from exchange.errors import (
    ExchangeCredentialsInvalid,
    ExchangeInvalidPriceData,
    ExchangeMalformedResponse,
    ExchangeRateLimited,
    ExchangeServerError,
    ExchangeUnreachable,
)
from tests.conftest import FakeSession, make_response


API_KEY = "public-key-abcd"
API_SECRET = "very-secret"
NOW = 1700000000.0
NOW_MS = "1700000000000"

ACCOUNT_BODY = {
    "accountType": "SPOT",
    "canTrade": True,
    "canWithdraw": False,
    "canDeposit": True,
    "updateTime": 123456789,
    "balances": [],
}


def make_client(*responses):
    session = FakeSession(*responses)
    client = ExchangeVerificationClient(
        base_url="https://exchange.test/",
        recv_window=5000,
        timeout=7,
        session=session,
        clock=lambda: NOW,
    )
    return client, session


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------

def test_sign_query_matches_published_vector():
    secret = "NhqPtmdSJYdKjVHjA7PZj4Mge3R5YNiP1e3UZjInClVN65XAbvqqM6A7H5fATj0j"
    query = (
        "symbol=LTCBTC&side=BUY&type=LIMIT&timeInForce=GTC&quantity=1&price=0.1"
        "&recvWindow=5000&timestamp=1499827319559"
    )
    assert sign_query(query, secret) == "c8db56825ae71d6d79447849e617115f4a920fa2acdcab2b053c4b2838bd6b71"


def test_signed_params_order_and_signature():
    client, _ = make_client()

    signed = client.build_signed_params(API_SECRET, {"needBtcValuation": "true"})

    query, _, signature = signed.rpartition("&signature=")
    assert query == f"recvWindow=5000&timestamp={NOW_MS}&needBtcValuation=true"
    assert signature == sign_query(query, API_SECRET)


def test_explicit_timestamp_wins_over_clock():
    client, _ = make_client()
    signed = client.build_signed_params(API_SECRET, timestamp=42)
    assert signed.startswith("recvWindow=5000&timestamp=42&signature=")


# ---------------------------------------------------------------------------
# Account verification
# ---------------------------------------------------------------------------

def test_verify_account_sends_signed_get():
    client, session = make_client(make_response(200, ACCOUNT_BODY))

    summary = client.verify_account(API_KEY, API_SECRET)

    assert summary.account_type == "SPOT"
    assert summary.can_trade is True
    assert summary.can_withdraw is False
    assert summary.to_dict()["updateTime"] == 123456789

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["timeout"] == 7
    assert call["headers"] == {"X-MBX-APIKEY": API_KEY}
    assert "data" not in call

    url = urlsplit(call["url"])
    assert f"{url.scheme}://{url.netloc}{url.path}" == f"https://exchange.test{ACCOUNT_PATH}"
    params = dict(parse_qsl(url.query))
    assert params["recvWindow"] == "5000"
    assert params["timestamp"] == NOW_MS
    assert API_SECRET not in call["url"]
    assert API_KEY not in call["url"]


@pytest.mark.parametrize("status,body,expected", [
    (401, {"code": -2015, "msg": "Invalid API-key, IP, or permissions for action."}, ExchangeCredentialsInvalid),
    (400, {"code": -1022, "msg": "Signature for this request is not valid."}, ExchangeCredentialsInvalid),
    (429, {"code": -1003, "msg": "Too many requests."}, ExchangeRateLimited),
    (418, {"code": -1003, "msg": "Way too many requests; IP banned."}, ExchangeRateLimited),
    (400, {"code": -1015, "msg": "Too many new orders."}, ExchangeRateLimited),
    (503, {"code": -1001, "msg": "Internal error."}, ExchangeServerError),
])
def test_verify_account_error_taxonomy(status, body, expected):
    client, _ = make_client(make_response(status, body))

    with pytest.raises(expected) as excinfo:
        client.verify_account(API_KEY, API_SECRET)

    assert excinfo.value.status == status
    assert excinfo.value.message == body["msg"]


def test_error_without_body_gets_generic_message():
    client, _ = make_client(make_response(502, raw="<html>Bad gateway</html>"))

    with pytest.raises(ExchangeServerError) as excinfo:
        client.verify_account(API_KEY, API_SECRET)

    assert excinfo.value.message == "Binance API error (502)"


def test_classify_error_prefers_exchange_message_over_fallback():
    error = classify_error(400, {"msg": "bad"}, fallback="ignored")
    assert isinstance(error, ExchangeCredentialsInvalid)
    assert error.message == "bad"
    assert classify_error(404, None, fallback="used").message == "used"


@pytest.mark.parametrize("failure", [
    requests.exceptions.ConnectTimeout("timed out"),
    requests.exceptions.ReadTimeout("timed out"),
    requests.exceptions.ConnectionError("connection refused"),
])
def test_transport_failure_is_unreachable(failure):
    client, _ = make_client(failure)

    with pytest.raises(ExchangeUnreachable) as excinfo:
        client.verify_account(API_KEY, API_SECRET)

    assert excinfo.value.status is None


@pytest.mark.parametrize("raw", ["", "   ", "not json"])
def test_unparseable_success_body_is_malformed(raw):
    client, _ = make_client(make_response(200, raw=raw))

    with pytest.raises(ExchangeMalformedResponse):
        client.verify_account(API_KEY, API_SECRET)


# ---------------------------------------------------------------------------
# Wallet valuation
# ---------------------------------------------------------------------------

def test_wallet_balance_is_btc_total_times_price():
    client, session = make_client(
        make_response(200, [
            {"asset": "BTC", "btcValuation": "0.5"},
            {"asset": "ETH", "btcValuation": "0.25"},
            {"asset": "DUST"},
            {"asset": "ODD", "btcValuation": "n/a"},
        ]),
        make_response(200, {"symbol": "BTCUSDT", "price": "40000.00"}),
    )

    total = client.fetch_wallet_balance_usd(API_KEY, API_SECRET)

    assert total == Decimal("30000")

    asset_call, price_call = session.calls
    assert asset_call["method"] == "POST"
    assert asset_call["url"] == f"https://exchange.test{USER_ASSET_PATH}"
    assert asset_call["headers"]["X-MBX-APIKEY"] == API_KEY
    assert asset_call["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
    form = dict(parse_qsl(asset_call["data"]))
    assert form["needBtcValuation"] == "true"
    assert "signature" in form

    assert price_call["method"] == "GET"
    assert price_call["url"] == f"https://exchange.test{TICKER_PRICE_PATH}"
    assert price_call["params"] == {"symbol": "BTCUSDT"}


def test_empty_wallet_skips_price_lookup():
    client, session = make_client(make_response(200, []))

    assert client.fetch_wallet_balance_usd(API_KEY, API_SECRET) == Decimal("0")
    assert len(session.calls) == 1


def test_non_list_assets_are_malformed():
    client, _ = make_client(make_response(200, {"unexpected": True}))

    with pytest.raises(ExchangeMalformedResponse):
        client.fetch_wallet_balance_usd(API_KEY, API_SECRET)


@pytest.mark.parametrize("price_body", [
    {"symbol": "BTCUSDT", "price": "0"},
    {"symbol": "BTCUSDT", "price": "-5"},
    {"symbol": "BTCUSDT", "price": "abc"},
    {"symbol": "BTCUSDT"},
])
def test_invalid_price_is_reported(price_body):
    client, _ = make_client(
        make_response(200, [{"asset": "BTC", "btcValuation": "1"}]),
        make_response(200, price_body),
    )

    with pytest.raises(ExchangeInvalidPriceData) as excinfo:
        client.fetch_wallet_balance_usd(API_KEY, API_SECRET)

    assert excinfo.value.message == "Received invalid BTC price from Binance"


def test_price_endpoint_failure_uses_valuation_message():
    client, _ = make_client(make_response(500, raw=""))

    with pytest.raises(ExchangeServerError) as excinfo:
        client.fetch_btc_price()

    assert excinfo.value.message == "Unable to retrieve BTC price for valuation"
