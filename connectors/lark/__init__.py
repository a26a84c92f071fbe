"""Lark (Feishu) bot connector."""

from connectors.lark.client import LarkApiError, LarkConfig, LarkNotifier


def build_lark_notifier(settings) -> LarkNotifier:
    """Create a notifier from ``core.config.Settings``.

    Raises:
        ValueError: If Lark credentials are missing
    """
    settings.require_lark()
    return LarkNotifier(LarkConfig(
        app_id=settings.lark_app_id,
        app_secret=settings.lark_app_secret,
        chat_id=settings.lark_chat_id,
        base_url=settings.lark_base_url,
    ))


__all__ = [
    "LarkApiError",
    "LarkConfig",
    "LarkNotifier",
    "build_lark_notifier",
]
