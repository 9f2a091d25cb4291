"""Ingestion layer.

This package contains the adapters that turn raw receiver output into
normalized :class:`~gnssbridge.models.fix.FixUpdate` records.
"""

from gnssbridge.ingestion.nmea import decode

__all__ = ["decode"]
