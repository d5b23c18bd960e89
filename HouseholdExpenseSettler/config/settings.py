"""
Environment settings for the household expense settler.

All values come from environment variables so the same code runs locally
and on a hosted container:

    FIREBASE_SERVICE_ACCOUNT        Service account JSON (takes precedence)
    FIREBASE_CREDENTIALS_PATH       Service account file fallback
    SETTLER_LOG_LEVEL               Logging level name (default INFO)
    SETTLER_STRICT                  Verify every settlement run (default false)
    SETTLER_UNKNOWN_MEMBER_POLICY   reject | placeholder (default reject)
    SETTLER_CURRENCY_SYMBOL         Symbol used in warnings (default $)
"""

import os

DEFAULT_CREDENTIALS_PATH = "config/serviceAccountKey.json"

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigurationError(ValueError):
    """Raised when an environment setting has an unsupported value."""
    pass


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def get_settings() -> dict:
    """
    Read settings from the environment.

    Read on every call, not cached, so tests can monkeypatch os.environ.

    Raises:
        ConfigurationError: If SETTLER_UNKNOWN_MEMBER_POLICY has an unsupported value.
    """
    policy = os.environ.get("SETTLER_UNKNOWN_MEMBER_POLICY", "reject").strip().lower()
    if policy not in ("reject", "placeholder"):
        raise ConfigurationError(
            f"SETTLER_UNKNOWN_MEMBER_POLICY must be 'reject' or 'placeholder', got: {policy}"
        )

    return {
        "service_account_json": os.environ.get("FIREBASE_SERVICE_ACCOUNT"),
        "credentials_path": os.environ.get("FIREBASE_CREDENTIALS_PATH", DEFAULT_CREDENTIALS_PATH),
        "log_level": os.environ.get("SETTLER_LOG_LEVEL", "INFO").upper(),
        "strict": _env_flag("SETTLER_STRICT"),
        "unknown_member_policy": policy,
        "currency_symbol": os.environ.get("SETTLER_CURRENCY_SYMBOL", "$")
    }
