from __future__ import annotations

import re
from functools import lru_cache
from urllib.parse import urlencode

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

_CREDENTIAL_QUERY_KEYS = frozenset(
    {"user", "username", "uid", "user id", "userid", "password", "pwd"}
)

# `Key=value;` segments of an ODBC/ADO string; braced values may contain `;`.
_ODBC_CREDENTIAL_RE = re.compile(
    r"(?i)(?P<key>\b(?:uid|pwd|password|user\s?id|user|username))\s*=\s*(?:\{[^}]*\}|[^;]*)"
)


def mask_odbc_credentials(value: str) -> str:
    """Replace `Uid=`/`Pwd=`/`User Id=`/`Password=` values with `***`."""
    return _ODBC_CREDENTIAL_RE.sub(lambda m: f"{m.group('key')}=***", str(value or ""))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="APP_ENV")
    port: int = Field(default=8080, validation_alias="PORT")
    api_version: str = Field(default="1.0.0", validation_alias="API_VERSION")

    # CORS / Frontend
    frontend_base_url: str = Field(
        default="http://localhost:3000", validation_alias="FRONTEND_BASE_URL"
    )
    frontend_urls: str | None = Field(default=None, validation_alias="FRONTEND_URLS")

    # Database (Azure SQL in production, SQLite for local work)
    database_url: str | None = Field(
        default="sqlite:///./travel.db", validation_alias="DATABASE_URL"
    )
    db_auto_create: bool = Field(default=True, validation_alias="DB_AUTO_CREATE")
    db_echo: bool = Field(default=False, validation_alias="DB_ECHO")

    # Auth (JWT)
    jwt_secret: str | None = Field(default=None, validation_alias="JWT_SECRET")
    jwt_valid_issuer: str = Field(default="vns-travel-api", validation_alias="JWT_VALID_ISSUER")
    jwt_valid_audience: str = Field(
        default="vns-travel-client", validation_alias="JWT_VALID_AUDIENCE"
    )
    jwt_access_token_minutes: int = Field(
        default=60, validation_alias="JWT_ACCESS_TOKEN_MINUTES"
    )
    jwt_refresh_token_days: int = Field(default=7, validation_alias="JWT_REFRESH_TOKEN_DAYS")

    # werkzeug.security method string, e.g. "pbkdf2:sha256" or "pbkdf2:sha256:600000".
    password_hash_method: str = Field(
        default="pbkdf2:sha256", validation_alias="PASSWORD_HASH_METHOD"
    )

    # Auth (password reset OTP)
    otp_ttl_seconds: int = Field(default=300, validation_alias="OTP_TTL_SECONDS")
    otp_length: int = Field(default=6, validation_alias="OTP_LENGTH")
    otp_max_attempts: int = Field(default=5, validation_alias="OTP_MAX_ATTEMPTS")

    # Auth (Google OAuth)
    google_client_id: str | None = Field(default=None, validation_alias="GOOGLE_CLIENT_ID")
    google_client_secret: str | None = Field(
        default=None, validation_alias="GOOGLE_CLIENT_SECRET"
    )
    google_redirect_uri: str | None = Field(default=None, validation_alias="GOOGLE_REDIRECT_URI")
    google_post_login_path: str = Field(
        default="/auth/google-callback", validation_alias="GOOGLE_POST_LOGIN_PATH"
    )

    # Email (SES)
    aws_region: str = Field(default="ap-southeast-1", validation_alias="AWS_REGION")
    email_from: str | None = Field(default=None, validation_alias="EMAIL_FROM")

    # Observability (OpenTelemetry)
    otel_enabled: bool = Field(default=False, validation_alias="OTEL_ENABLED")
    otel_service_name: str | None = Field(
        default="vns-travel-api", validation_alias="OTEL_SERVICE_NAME"
    )
    otel_exporter_otlp_endpoint: str | None = Field(
        default=None, validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT"
    )

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        if v in ("test", "testing"):
            return "test"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def is_development(self) -> bool:
        return self.normalized_environment == "development"

    @property
    def google_configured(self) -> bool:
        return bool(
            self.google_client_id and self.google_client_secret and self.google_redirect_uri
        )

    def masked_database_url(self) -> str:
        """
        Connection string with every user name and password replaced by `***`.

        Covers URL credentials, credential query keys and the ODBC string
        carried in `odbc_connect` (the usual Azure SQL form). Strings that are
        not SQLAlchemy URLs are treated as ODBC/ADO strings.
        """
        raw = str(self.database_url or "").strip()
        if not raw:
            return "Connection string not found"
        try:
            url = make_url(raw)
        except Exception:
            return mask_odbc_credentials(raw)

        # Formatted by hand: URL rendering would percent-encode the mask.
        out = f"{url.drivername}://"
        if url.username or url.password:
            out += "***" if url.username else ""
            out += ":***" if url.password else ""
            out += "@"
        out += url.host or ""
        if url.port:
            out += f":{url.port}"
        if url.database:
            out += f"/{url.database}"

        pairs: list[tuple[str, str]] = []
        for key in sorted(url.query):
            values = url.query[key]
            for value in values if isinstance(values, tuple) else (values,):
                k = key.lower()
                if k in _CREDENTIAL_QUERY_KEYS:
                    value = "***"
                elif k == "odbc_connect":
                    value = mask_odbc_credentials(value)
                pairs.append((key, value))
        if pairs:
            out += "?" + urlencode(pairs, safe="*")
        return out

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Development/test are allowed to run with partial config for local work,
        but production must be fully configured.
        """
        if not self.is_production:
            return

        missing: list[str] = []

        if not self.jwt_secret:
            missing.append("JWT_SECRET")

        db = str(self.database_url or "").strip()
        if not db or db.startswith("sqlite"):
            missing.append("DATABASE_URL (non-sqlite)")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "frontend": {
                "frontend_base_url": self.frontend_base_url,
                "frontend_urls": self.frontend_urls,
            },
            "database": {
                "database_url": self.masked_database_url(),
                "db_auto_create": bool(self.db_auto_create),
            },
            "auth": {
                "jwt_secret_configured": _has(self.jwt_secret),
                "jwt_valid_issuer": self.jwt_valid_issuer,
                "jwt_valid_audience": self.jwt_valid_audience,
                "jwt_access_token_minutes": self.jwt_access_token_minutes,
                "jwt_refresh_token_days": self.jwt_refresh_token_days,
                "otp_ttl_seconds": self.otp_ttl_seconds,
                "google_client_id": self.google_client_id,
                "google_client_secret_configured": _has(self.google_client_secret),
                "google_redirect_uri": self.google_redirect_uri,
            },
            "email": {
                "aws_region": self.aws_region,
                "email_from_configured": _has(self.email_from),
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s


# Module-level singleton.
settings = get_settings()
