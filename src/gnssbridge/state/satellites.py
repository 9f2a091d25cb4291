"""Satellites-in-view table built from GSV sentences."""

from __future__ import annotations

from enum import StrEnum

from gnssbridge.models.fix import FixUpdate, SatelliteInfo

STRONG_SNR = 30
MODERATE_SNR = 20


class SignalStrength(StrEnum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


def classify_snr(snr: int) -> SignalStrength:
    if snr >= STRONG_SNR:
        return SignalStrength.STRONG
    if snr >= MODERATE_SNR:
        return SignalStrength.MODERATE
    return SignalStrength.WEAK


class SatelliteTracker:
    """Keeps the latest GSV entry per PRN.

    Subscribe :meth:`on_fix` to a :class:`~gnssbridge.state.events.FixBus`.
    Entries are replaced by PRN and never expire; call :meth:`clear` when
    the receiver is reconnected.
    """

    def __init__(self) -> None:
        self._by_prn: dict[int, SatelliteInfo] = {}

    def on_fix(self, update: FixUpdate) -> None:
        view = update.satellites_in_view
        if view is None:
            return
        for satellite in view.satellites:
            self._by_prn[satellite.prn] = satellite

    def satellites(self) -> list[SatelliteInfo]:
        """Tracked satellites ordered by PRN."""
        return [self._by_prn[prn] for prn in sorted(self._by_prn)]

    def signal_strengths(self) -> dict[int, SignalStrength]:
        return {prn: classify_snr(sat.snr) for prn, sat in sorted(self._by_prn.items())}

    def clear(self) -> None:
        self._by_prn.clear()

    def __len__(self) -> int:
        return len(self._by_prn)
