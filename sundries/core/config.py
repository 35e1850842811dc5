# sundries/core/config.py
import os
from typing import List
from pydantic import BaseModel
from dotenv import load_dotenv
from urllib.parse import quote_plus

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Sundries Billing API")
    API_V1_STR: str = os.getenv("API_V1_STR", "")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    TIMEZONE: str = os.getenv("TIMEZONE", "Europe/London")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ))

    # ---------- Database ----------
    MYSQL_HOST: str = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT: int = int(os.getenv("MYSQL_PORT", "3306"))
    MYSQL_USER: str = os.getenv("MYSQL_USER", "sundries")
    MYSQL_PASSWORD: str = os.getenv("MYSQL_PASSWORD", "")
    MYSQL_DB: str = os.getenv("MYSQL_DB", "sundries")
    DB_DRIVER: str = os.getenv("DB_DRIVER", "pymysql")

    # DATABASE_URL wins over the assembled MySQL URI
    SQLALCHEMY_DATABASE_URI: str = os.getenv("DATABASE_URL") or (
        f"mysql+{DB_DRIVER}://{quote_plus(MYSQL_USER)}:{quote_plus(MYSQL_PASSWORD)}"
        f"@{MYSQL_HOST}:{MYSQL_PORT}/{MYSQL_DB}?charset=utf8mb4")

    # ---------- Identity (Entra ID) ----------
    TENANT_ID: str = os.getenv("TENANT_ID", "")
    API_AUDIENCE: str = os.getenv("API_AUDIENCE", "")
    JWKS_CACHE_TTL_SECONDS: int = int(os.getenv("JWKS_CACHE_TTL_SECONDS", "300"))
    AUTH_HTTP_TIMEOUT: float = float(os.getenv("AUTH_HTTP_TIMEOUT", "10"))

    @property
    def issuer(self) -> str:
        return f"https://login.microsoftonline.com/{self.TENANT_ID}/v2.0"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/discovery/v2.0/keys"

    # ---------- Mail ----------
    MAIL_BACKEND: str = os.getenv("MAIL_BACKEND", "graph")
    GRAPH_TENANT_ID: str = os.getenv("GRAPH_TENANT_ID") or os.getenv("TENANT_ID", "")
    GRAPH_CLIENT_ID: str = os.getenv("GRAPH_CLIENT_ID", "")
    GRAPH_CLIENT_SECRET: str = os.getenv("GRAPH_CLIENT_SECRET", "")
    GRAPH_SENDER_UPN: str = os.getenv("GRAPH_SENDER_UPN", "")
    GRAPH_TIMEOUT: float = float(os.getenv("GRAPH_TIMEOUT", "30"))

    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.office365.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: str = os.getenv("SMTP_USER", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_FROM: str = os.getenv("SMTP_FROM", "")
    SMTP_TLS: bool = _flag("SMTP_TLS", "true")

    # ---------- CareHQ roster ----------
    CAREHQ_ACCOUNT_ID: str = os.getenv("CAREHQ_ACCOUNT_ID", "")
    CAREHQ_API_KEY: str = os.getenv("CAREHQ_API_KEY", "")
    CAREHQ_API_SECRET: str = os.getenv("CAREHQ_API_SECRET", "")
    CAREHQ_BASE_URL: str = os.getenv("CAREHQ_BASE_URL", "https://api.carehq.co.uk")
    CAREHQ_TIMEOUT: float = float(os.getenv("CAREHQ_TIMEOUT", "30"))
    CAREHQ_PAGE_SIZE: int = int(os.getenv("CAREHQ_PAGE_SIZE", "100"))

    # ---------- Invoicing ----------
    COMPANY_NAME: str = os.getenv("COMPANY_NAME", "Sundries Services Ltd")
    PDF_ROWS_PER_PAGE: int = int(os.getenv("PDF_ROWS_PER_PAGE", "28"))
    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "£")


settings = Settings()
