# ==========================================================================================================
# -------------- Configuration file for the Magnus subscription service -------------------------------------
# ==========================================================================================================
import os
from dotenv import load_dotenv


if os.environ.get("FLASK_ENV") != "production":
    load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    """Base configuration class for the Flask app (used in all environments)."""

    SECRET_KEY = os.getenv("SECRET_KEY")

    FLASK_ENV = os.getenv("FLASK_ENV", "production")
    DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "t")
    TESTING = False

    _database_url = os.getenv("DATABASE_URL")
    if not _database_url:
        _database_url = f"sqlite:///{os.path.join(basedir, 'instance', 'magnus.db')}"

    if _database_url.startswith("postgres://"):
        _database_url = _database_url.replace("postgres://", "postgresql+pg8000://", 1)

    SQLALCHEMY_DATABASE_URI = _database_url
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    if not _database_url.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        }

    LOG_DIR = os.getenv("LOG_DIR", "logs")

    # Exchange (Binance) verification
    BINANCE_API_URL = os.getenv("BINANCE_API_URL", "https://api.binance.com")
    BINANCE_RECV_WINDOW = int(os.getenv("BINANCE_RECV_WINDOW", "5000"))
    BINANCE_TIMEOUT_SECONDS = float(os.getenv("BINANCE_TIMEOUT_SECONDS", "10"))
    BINANCE_VALUATION_SYMBOL = os.getenv("BINANCE_VALUATION_SYMBOL", "BTCUSDT")

    DEFAULT_PROFIT_SHARE = os.getenv("DEFAULT_PROFIT_SHARE", "3.5")

    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5000")


class TestingConfig(Config):

    TESTING = True
    DEBUG = False
    SECRET_KEY = "testing-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    BINANCE_API_URL = "https://exchange.test"
    APP_BASE_URL = "https://magnus.test"
