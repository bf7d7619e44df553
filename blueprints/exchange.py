#======================================================================================================
#
#   BINANCE CONNECTION API - verify credentials and value the wallet before keys are saved
#
#======================================================================================================
from flask import Blueprint, jsonify, request, current_app

from exchange.binance_client import ExchangeVerificationClient
from exchange.errors import ExchangeAPIError


bp = Blueprint("exchange", __name__, url_prefix="/api/binance")


def get_exchange_client() -> ExchangeVerificationClient:
    """Client factory; tests swap the transport through app.extensions."""
    session = current_app.extensions.get("exchange_http_session")
    return ExchangeVerificationClient.from_config(current_app.config, session=session)


def _read_credentials():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return None, None, (jsonify({"error": "Invalid JSON body"}), 400)

    api_key = str(body.get("apiKey") or "").strip()
    api_secret = str(body.get("apiSecret") or "").strip()
    return api_key, api_secret, None


@bp.route("/verify", methods=["POST"])
def verify():
    api_key, api_secret, error = _read_credentials()
    if error:
        return error

    if not api_key or not api_secret:
        return jsonify({"error": "Binance API key and secret are both required for verification."}), 400

    try:
        account = get_exchange_client().verify_account(api_key, api_secret)
    except ExchangeAPIError as e:
        return jsonify({"error": e.message}), e.status or 500
    except Exception:
        current_app.logger.exception("Unexpected error verifying Binance credentials")
        return jsonify({"error": "Unable to verify Binance credentials right now."}), 500

    return jsonify({"account": account.to_dict()}), 200


@bp.route("/wallet", methods=["POST"])
def wallet():
    api_key, api_secret, error = _read_credentials()
    if error:
        return error

    if not api_key or not api_secret:
        return jsonify({"error": "Binance API key and secret are required."}), 400

    try:
        total = get_exchange_client().fetch_wallet_balance_usd(api_key, api_secret)
    except ExchangeAPIError as e:
        current_app.logger.error(f"Failed to fetch Binance wallet balance: {e!r}")
        return jsonify({"error": e.message}), e.status or 502
    except Exception:
        current_app.logger.exception("Failed to fetch Binance wallet balance")
        return jsonify({"error": "Unexpected error contacting Binance. Please try again."}), 502

    return jsonify({"totalBalanceUSD": float(total)}), 200
