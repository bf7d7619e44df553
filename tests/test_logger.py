import logging

from logger import RedactSecretsFilter, mask_key


def _record(msg, *args):
    return logging.LogRecord("exchange", logging.INFO, __file__, 1, msg, args, None)


def test_mask_key():
    assert mask_key("abcdefgh1234") == "***1234"
    assert mask_key("") == "<empty>"
    assert mask_key(None) == "<empty>"


def test_signature_is_redacted():
    record = _record("GET /api/v3/account?recvWindow=5000&timestamp=1&signature=%s", "c8db56825ae7")

    assert RedactSecretsFilter().filter(record) is True
    assert record.getMessage() == "GET /api/v3/account?recvWindow=5000&timestamp=1&signature=<redacted>"


def test_api_secret_is_redacted():
    record = _record("payload: {'apiKey': 'k', 'apiSecret': 'hunter2'}")

    RedactSecretsFilter().filter(record)

    assert "hunter2" not in record.getMessage()
    assert "'apiKey': 'k'" in record.getMessage()


def test_plain_messages_are_untouched():
    record = _record("Signed %s %s for key %s", "GET", "/api/v3/account", "***abcd")

    RedactSecretsFilter().filter(record)

    assert record.msg == "Signed %s %s for key %s"
    assert record.getMessage() == "Signed GET /api/v3/account for key ***abcd"
