#======================================================================================================
#
#   BINANCE ACCOUNT / ASSET CLIENT - credential verification and wallet valuation
#
#======================================================================================================
import hashlib
import hmac
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import requests

from logger import exchange_logger, mask_key
from exchange.errors import (
    ExchangeAPIError,
    ExchangeCredentialsInvalid,
    ExchangeInvalidPriceData,
    ExchangeMalformedResponse,
    ExchangeRateLimited,
    ExchangeServerError,
    ExchangeUnreachable,
)


ACCOUNT_PATH = "/api/v3/account"
USER_ASSET_PATH = "/sapi/v3/asset/getUserAsset"
TICKER_PRICE_PATH = "/api/v3/ticker/price"

API_KEY_HEADER = "X-MBX-APIKEY"
RATE_LIMIT_STATUSES = (418, 429)
RATE_LIMIT_CODES = (-1003, -1015)


def sign_query(query: str, api_secret: str) -> str:
    """Hex HMAC-SHA256 of the serialized query, keyed by the API secret."""
    return hmac.new(api_secret.encode("utf-8"), query.encode("utf-8"), hashlib.sha256).hexdigest()


def _to_decimal(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def classify_error(status: int, payload: Any, fallback: Optional[str] = None) -> ExchangeAPIError:
    """Map a non-2xx exchange response onto the error taxonomy, passing the exchange message through."""
    message = None
    code = None
    if isinstance(payload, dict):
        message = payload.get("msg") or None
        code = payload.get("code")
    message = message or fallback or f"Binance API error ({status})"

    if status in RATE_LIMIT_STATUSES or code in RATE_LIMIT_CODES:
        return ExchangeRateLimited(message, status)
    if 400 <= status < 500:
        return ExchangeCredentialsInvalid(message, status)
    return ExchangeServerError(message, status)


@dataclass(frozen=True)
class AccountSummary:
    account_type: str
    can_trade: bool
    can_withdraw: bool
    can_deposit: bool
    update_time: int

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AccountSummary":
        return cls(
            account_type=payload.get("accountType"),
            can_trade=bool(payload.get("canTrade")),
            can_withdraw=bool(payload.get("canWithdraw")),
            can_deposit=bool(payload.get("canDeposit")),
            update_time=payload.get("updateTime"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accountType": self.account_type,
            "canTrade": self.can_trade,
            "canWithdraw": self.can_withdraw,
            "canDeposit": self.can_deposit,
            "updateTime": self.update_time,
        }


class ExchangeVerificationClient:
    """
    Signed-request client for the exchange account and asset endpoints.

    Every call is a single attempt with a bounded timeout; nothing is retried
    and no credentials are stored. The HTTP session and the clock are injected
    so that signing is reproducible and transport can be stubbed.
    """

    def __init__(self, base_url: str, recv_window: int = 5000, timeout: float = 10,
                 session: Optional[requests.Session] = None,
                 valuation_symbol: str = "BTCUSDT",
                 clock: Optional[Callable[[], float]] = None):
        self.base_url = base_url.rstrip("/")
        self.recv_window = int(recv_window)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.valuation_symbol = valuation_symbol
        self.clock = clock or time.time

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None) -> "ExchangeVerificationClient":
        return cls(
            base_url=config.get("BINANCE_API_URL", "https://api.binance.com"),
            recv_window=config.get("BINANCE_RECV_WINDOW", 5000),
            timeout=config.get("BINANCE_TIMEOUT_SECONDS", 10),
            valuation_symbol=config.get("BINANCE_VALUATION_SYMBOL", "BTCUSDT"),
            session=session,
        )

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------
    def timestamp_ms(self) -> int:
        return int(self.clock() * 1000)

    def build_signed_params(self, api_secret: str, params: Optional[Dict[str, str]] = None,
                            timestamp: Optional[int] = None) -> str:
        """recvWindow, timestamp, then endpoint params in insertion order, plus the signature."""
        query_params = {
            "recvWindow": str(self.recv_window),
            "timestamp": str(timestamp if timestamp is not None else self.timestamp_ms()),
        }
        query_params.update(params or {})

        query = urlencode(query_params)
        return f"{query}&{urlencode({'signature': sign_query(query, api_secret)})}"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            raise ExchangeUnreachable(f"Binance did not respond within {self.timeout} seconds")
        except requests.exceptions.RequestException as e:
            raise ExchangeUnreachable(str(e) or "Unable to reach Binance at the moment")

    @staticmethod
    def _parse_body(response: requests.Response):
        text = response.text
        if not text or not text.strip():
            return None
        try:
            return response.json()
        except ValueError:
            raise ExchangeMalformedResponse("Received a non-JSON response from Binance", response.status_code)

    def _handle(self, response: requests.Response, fallback: Optional[str] = None):
        if not response.ok:
            try:
                payload = self._parse_body(response)
            except ExchangeMalformedResponse:
                payload = None
            raise classify_error(response.status_code, payload, fallback)

        payload = self._parse_body(response)
        if payload is None:
            raise ExchangeMalformedResponse("Received empty response from Binance", response.status_code)
        return payload

    def signed_request(self, api_key: str, api_secret: str, path: str,
                       method: str = "GET", params: Optional[Dict[str, str]] = None):
        method = method.upper()
        signed = self.build_signed_params(api_secret, params)
        headers = {API_KEY_HEADER: api_key}
        url = f"{self.base_url}{path}"

        exchange_logger.info(f"Signed {method} {path} for key {mask_key(api_key)}")

        if method == "GET":
            response = self._send(method, f"{url}?{signed}", headers=headers)
        else:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            response = self._send(method, url, headers=headers, data=signed)

        try:
            return self._handle(response)
        except ExchangeAPIError as e:
            exchange_logger.warning(
                f"{method} {path} failed for key {mask_key(api_key)}: {e.__class__.__name__} "
                f"status={e.status} message={e.message}"
            )
            raise

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def verify_account(self, api_key: str, api_secret: str) -> AccountSummary:
        payload = self.signed_request(api_key, api_secret, ACCOUNT_PATH)
        if not isinstance(payload, dict):
            raise ExchangeMalformedResponse("Unexpected response when retrieving Binance account")
        return AccountSummary.from_payload(payload)

    def fetch_btc_price(self) -> Decimal:
        response = self._send("GET", f"{self.base_url}{TICKER_PRICE_PATH}",
                              params={"symbol": self.valuation_symbol})
        payload = self._handle(response, fallback="Unable to retrieve BTC price for valuation")

        price = _to_decimal(payload.get("price")) if isinstance(payload, dict) else None
        if price is None or price <= 0:
            raise ExchangeInvalidPriceData("Received invalid BTC price from Binance")
        return price

    def fetch_wallet_balance_usd(self, api_key: str, api_secret: str) -> Decimal:
        assets = self.signed_request(
            api_key, api_secret, USER_ASSET_PATH,
            method="POST",
            params={"needBtcValuation": "true"},
        )
        if not isinstance(assets, list):
            raise ExchangeMalformedResponse("Unexpected response when retrieving Binance assets")

        total_btc = Decimal("0")
        for asset in assets:
            valuation = _to_decimal(asset.get("btcValuation")) if isinstance(asset, dict) else None
            total_btc += valuation or Decimal("0")

        if total_btc <= 0:
            return Decimal("0")

        return total_btc * self.fetch_btc_price()
