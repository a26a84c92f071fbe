"""External collaborators.

- ``connectors.kiotviet``: KiotViet public API (orders, invoices)
- ``connectors.lark``: Lark bot that receives the reports

Tick orchestration depends only on ``KiotVietClient`` and the ``Notifier``
interface from ``connectors.base``.
"""

from connectors.base import Notifier

__all__ = ["Notifier"]
