"""Runtime configuration.

Settings are read from the environment; a ``.env`` file at the repository
root is loaded first if it exists.

Usage:
    from core.config import Settings

    settings = Settings.from_env()
    settings.require_kiotviet()
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Mapping, Optional

from dotenv import load_dotenv


ROOT_DIR = Path(__file__).resolve().parents[1]


def load_env_file(env_path: Optional[Path] = None) -> bool:
    """Load ``.env`` into the process environment (existing vars win)."""
    env_path = env_path or ROOT_DIR / ".env"
    if env_path.exists():
        return load_dotenv(env_path)
    return False


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = env.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_int_set(env: Mapping[str, str], name: str, default: FrozenSet[int]) -> FrozenSet[int]:
    value = env.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return frozenset(int(part) for part in value.split(",") if part.strip())
    except ValueError:
        raise ValueError(f"{name} must be a comma-separated list of integers, got {value!r}")


@dataclass
class Settings:
    """All tunables of the monitor.

    Attributes:
        kiot_base_url: KiotViet public API base URL
        kiot_client_id / kiot_secret_key: client-credentials pair
        kiot_shop_name: Retailer header value
        lark_app_id / lark_app_secret / lark_chat_id: Lark bot credentials and target chat
        data_dir: Directory for the sent-log, snapshots and order archive
        scan_interval_seconds / reconcile_interval_seconds: tick cadence
        order_window_days: Days of orders kept in the archive
        sent_log_retention_days: Sent-log entries older than this are pruned
        invoice_lookback_days: 0 means "invoices modified since midnight today"
        valid_order_statuses: Order statuses compared with invoices
        invoice_canceled_status: Invoice status meaning "canceled"
        notify_order_changes: Also report new/updated orders on the periodic path
    """
    kiot_base_url: str = "https://public.kiotapi.com"
    kiot_token_url: str = "https://id.kiotviet.vn/connect/token"
    kiot_client_id: str = ""
    kiot_secret_key: str = ""
    kiot_shop_name: str = ""

    lark_base_url: str = "https://open.larksuite.com/open-apis"
    lark_app_id: str = ""
    lark_app_secret: str = ""
    lark_chat_id: str = ""

    data_dir: Path = field(default_factory=lambda: ROOT_DIR / "data")

    scan_interval_seconds: int = 15
    reconcile_interval_seconds: int = 15

    order_window_days: int = 14
    sent_log_retention_days: int = 60
    invoice_lookback_days: int = 0

    valid_order_statuses: FrozenSet[int] = frozenset({1, 2, 3})
    invoice_canceled_status: int = 2
    notify_order_changes: bool = False

    log_level: str = "INFO"
    log_json: bool = False

    temporal_endpoint: Optional[str] = None
    temporal_namespace: str = "default"
    temporal_api_key: Optional[str] = None
    temporal_cert_path: Optional[str] = None
    temporal_task_queue: str = "kiotviet-monitor"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, load_dotenv_file: bool = True) -> "Settings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (tests)
            load_dotenv_file: Load ``.env`` first when reading ``os.environ``

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        if env is None:
            if load_dotenv_file:
                load_env_file()
            env = os.environ

        defaults = cls()
        return cls(
            kiot_base_url=env.get("KIOT_BASE_URL", defaults.kiot_base_url).rstrip("/"),
            kiot_token_url=env.get("KIOT_TOKEN_URL", defaults.kiot_token_url),
            kiot_client_id=env.get("KIOT_CLIENT_ID", ""),
            kiot_secret_key=env.get("KIOT_SECRET_KEY", ""),
            kiot_shop_name=env.get("KIOT_SHOP_NAME", ""),
            lark_base_url=env.get("LARK_BASE_URL", defaults.lark_base_url).rstrip("/"),
            lark_app_id=env.get("LARK_APP_ID", ""),
            lark_app_secret=env.get("LARK_APP_SECRET_KEY", ""),
            lark_chat_id=env.get("LARK_CHAT_ID", ""),
            data_dir=Path(env["DATA_DIR"]) if env.get("DATA_DIR") else defaults.data_dir,
            scan_interval_seconds=_get_int(env, "SCAN_INTERVAL_SECONDS", defaults.scan_interval_seconds),
            reconcile_interval_seconds=_get_int(env, "RECONCILE_INTERVAL_SECONDS", defaults.reconcile_interval_seconds),
            order_window_days=_get_int(env, "ORDER_WINDOW_DAYS", defaults.order_window_days),
            sent_log_retention_days=_get_int(env, "SENT_LOG_RETENTION_DAYS", defaults.sent_log_retention_days),
            invoice_lookback_days=_get_int(env, "INVOICE_LOOKBACK_DAYS", defaults.invoice_lookback_days),
            valid_order_statuses=_get_int_set(env, "VALID_ORDER_STATUSES", defaults.valid_order_statuses),
            invoice_canceled_status=_get_int(env, "INVOICE_CANCELED_STATUS", defaults.invoice_canceled_status),
            notify_order_changes=_get_bool(env, "NOTIFY_ORDER_CHANGES", defaults.notify_order_changes),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
            log_json=_get_bool(env, "LOG_JSON", defaults.log_json),
            temporal_endpoint=env.get("TEMPORAL_ENDPOINT") or None,
            temporal_namespace=env.get("TEMPORAL_NAMESPACE", defaults.temporal_namespace),
            temporal_api_key=env.get("TEMPORAL_API_KEY") or None,
            temporal_cert_path=env.get("TEMPORAL_CERT_PATH") or None,
            temporal_task_queue=env.get("TEMPORAL_TASK_QUEUE", defaults.temporal_task_queue),
        )

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)

    def require_kiotviet(self):
        """Raise ValueError if KiotViet credentials are missing."""
        missing = [
            name for name, value in (
                ("KIOT_CLIENT_ID", self.kiot_client_id),
                ("KIOT_SECRET_KEY", self.kiot_secret_key),
                ("KIOT_SHOP_NAME", self.kiot_shop_name),
            ) if not value
        ]
        if missing:
            raise ValueError(f"Missing KiotViet configuration: {', '.join(missing)}")

    def require_lark(self):
        """Raise ValueError if Lark credentials are missing."""
        missing = [
            name for name, value in (
                ("LARK_APP_ID", self.lark_app_id),
                ("LARK_APP_SECRET_KEY", self.lark_app_secret),
                ("LARK_CHAT_ID", self.lark_chat_id),
            ) if not value
        ]
        if missing:
            raise ValueError(f"Missing Lark configuration: {', '.join(missing)}")
