"""Core module - models, storage, configuration and observability.

This module contains the KiotViet record models, the persisted monitor state
(sent-log, status snapshot, order archive), settings and logging/metrics.
It knows nothing about HTTP clients or chat platforms.

KiotViet and Lark specifics belong in /connectors/.
"""

__version__ = "1.0.0"
