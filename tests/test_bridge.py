from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import pytest

from gnssbridge.bridge import BridgeContext
from gnssbridge.config import BridgeConfig
from gnssbridge.exceptions import BridgeConfigError
from gnssbridge.models.fix import FixUpdate, GnssMode
from gnssbridge.state.events import FixBus
from gnssbridge.state.policy import UpdateGate
from gnssbridge.state.registers import HoldingRegister
from gnssbridge.state.satellites import SatelliteTracker, SignalStrength, classify_snr

RMC = "$GPRMC,123519,A,4807.038,N,01131.000,E,022.4,084.4,230394,003.1,W*6A"
GGA = "$GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,46.9,M,,*47"
HOST = "127.0.0.1"


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_update_gate_drops_inside_interval() -> None:
    clock = _FakeClock()
    gate = UpdateGate(0.1, clock=clock)
    assert gate.min_interval == 0.1

    assert gate.ready()
    clock.now = 0.05
    assert not gate.ready()
    clock.now = 0.1
    assert gate.ready()
    clock.now = 0.15
    assert not gate.ready()

    gate.reset()
    assert gate.ready()


def test_fix_bus_isolates_failing_subscriber(caplog: pytest.LogCaptureFixture) -> None:
    bus = FixBus()
    received: list[FixUpdate] = []

    def broken(update: FixUpdate) -> None:
        raise RuntimeError("boom")

    bus.subscribe(broken)
    unsubscribe = bus.subscribe(received.append)

    with caplog.at_level(logging.ERROR, logger="gnssbridge.state.events"):
        bus.publish(FixUpdate(sentence="GPGGA"))

    assert len(received) == 1
    assert "boom" in caplog.text

    unsubscribe()
    bus.publish(FixUpdate(sentence="GPGGA"))
    assert len(received) == 1
    assert len(bus) == 1


def test_satellite_tracker_keeps_latest_per_prn() -> None:
    tracker = SatelliteTracker()
    bridge = BridgeContext()
    bridge.bus.subscribe(tracker.on_fix)

    bridge.feed_line("$GPGSV,2,1,05,12,40,100,35,03,10,200,22,07,05,050,")
    bridge.feed_line("$GPGSV,2,2,05,21,60,300,41,12,41,101,18")

    assert [sat.prn for sat in tracker.satellites()] == [3, 7, 12, 21]
    assert tracker.signal_strengths() == {
        3: SignalStrength.MODERATE,
        7: SignalStrength.WEAK,
        12: SignalStrength.WEAK,
        21: SignalStrength.STRONG,
    }
    assert len(bridge.satellites) == 4

    tracker.clear()
    assert len(tracker) == 0


def test_classify_snr_thresholds() -> None:
    assert classify_snr(30) == SignalStrength.STRONG
    assert classify_snr(29) == SignalStrength.MODERATE
    assert classify_snr(20) == SignalStrength.MODERATE
    assert classify_snr(0) == SignalStrength.WEAK


@pytest.mark.asyncio
async def test_registers_only_update_while_modbus_runs() -> None:
    gate_clock = _FakeClock()
    config = BridgeConfig(modbus_host=HOST, update_interval=0.1)
    async with BridgeContext(config, clock=lambda: 1_700_000_000.0, gate_clock=gate_clock) as bridge:
        assert bridge.feed_line(GGA) is not None
        assert bridge.modbus.bank.read_holding(HoldingRegister.SATELLITES, 1) == [0]

        result = await bridge.start_modbus(0)
        assert result.success

        bridge.feed_line(RMC)
        assert bridge.modbus.bank.read_holding(HoldingRegister.YEAR, 1) == [1994]

        gate_clock.now = 0.05
        bridge.feed_line(GGA)
        assert bridge.modbus.bank.read_holding(HoldingRegister.SATELLITES, 1) == [0]

        gate_clock.now = 0.2
        bridge.feed_line(GGA)
        assert bridge.modbus.bank.read_holding(HoldingRegister.SATELLITES, 1) == [8]
        assert bridge.modbus_status().holding_registers[HoldingRegister.TIMEZONE - 1] == 8

        await bridge.stop_modbus()
        gate_clock.now = 1.0
        bridge.feed_line("$GPGGA,123519,4807.038,N,01131.000,E,1,11,0.9,545.4,M,,,,")
        assert bridge.modbus.bank.read_holding(HoldingRegister.SATELLITES, 1) == [8]


@pytest.mark.asyncio
async def test_timezone_change_applies_to_next_fix() -> None:
    config = BridgeConfig(modbus_host=HOST, update_interval=0)
    async with BridgeContext(config) as bridge:
        await bridge.start_modbus(0)
        bridge.set_timezone(-5)
        bridge.feed_line(RMC)

        assert bridge.timezone_offset == -5
        assert bridge.modbus.bank.read_holding(HoldingRegister.TIMEZONE, 1) == [0xFFFB]


@pytest.mark.asyncio
async def test_feed_lines_counts_decoded_sentences() -> None:
    bridge = BridgeContext()

    async def lines() -> AsyncIterator[str]:
        for line in (RMC, "garbage", GGA, ""):
            yield line

    assert await bridge.feed_lines([RMC, "noise", GGA]) == 2
    assert await bridge.feed_lines(lines()) == 2


def test_mode_filters_subsequent_sentences() -> None:
    bridge = BridgeContext()

    bridge.set_mode("beidou")

    assert bridge.mode == GnssMode.BEIDOU
    assert bridge.feed_line(GGA) is None
    update = bridge.feed_line("$GNGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,,,,")
    assert update is not None
    assert update.mode == GnssMode.BEIDOU

    with pytest.raises(BridgeConfigError):
        bridge.set_mode("glonass")


def test_checksum_verification_follows_config() -> None:
    corrupted = RMC[:-2] + "00"

    assert BridgeContext(BridgeConfig(verify_checksum=True)).feed_line(corrupted) is None
    assert BridgeContext(BridgeConfig()).feed_line(corrupted) is not None


def test_bridge_exposes_both_services() -> None:
    bridge = BridgeContext()

    assert set(bridge.services) == {"modbus", "ntp"}
    assert not bridge.modbus_status().is_running
    assert not bridge.ntp_status().is_running
    bridge.set_ntp_offset(3)
    assert bridge.ntp.offset_hours == 3
