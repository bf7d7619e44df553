# logger.py - named loggers for the app, the commission audit trail and exchange calls
import os
import re
import logging
from logging.handlers import RotatingFileHandler


LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]"

# signature=<hex> in a signed query, or an apiSecret value in a JSON-ish dump
_SECRET_PATTERNS = (
    re.compile(r"(signature=)[0-9a-fA-F]+"),
    re.compile(r"""(["']?apiSecret["']?\s*[:=]\s*["']?)[^"'&,\s}]+"""),
)


class RedactSecretsFilter(logging.Filter):
    """Scrub request signatures and API secrets from the final log message."""

    def filter(self, record):
        message = record.getMessage()
        redacted = message
        for pattern in _SECRET_PATTERNS:
            redacted = pattern.sub(r"\1<redacted>", redacted)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def mask_key(value):
    """Show only the last four characters of an API key."""
    if not value:
        return "<empty>"
    return f"***{value[-4:]}"


def setup_logger(name, level=logging.INFO, redact=False):
    """
    File logger under LOG_DIR with rotation, plus a console handler
    outside production. Handlers are attached once per name.
    """
    log_dir = os.environ.get("LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level)

    file_handler = RotatingFileHandler(
        os.path.join(log_dir, f"{name}.log"),
        maxBytes=1024 * 1024,
        backupCount=5,
        delay=True,
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)

    if os.environ.get("FLASK_ENV") != "production":
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter("%(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(console_handler)

    if redact:
        logger.addFilter(RedactSecretsFilter())

    return logger


app_logger = setup_logger("service")
# COMMISSION_AUDIT lines, one per credited ancestor
commissions_logger = setup_logger("commissions")
exchange_logger = setup_logger("exchange", redact=True)
