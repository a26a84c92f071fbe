"""Runtimes that drive the ticks: Temporal worker and local asyncio scheduler."""
