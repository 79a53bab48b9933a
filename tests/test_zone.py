"""Tests for the zone APIs (overlays, away configuration & schedules)."""

from __future__ import annotations

from datetime import date, timedelta as td
from typing import TYPE_CHECKING, Any

import pytest
from aioresponses import aioresponses
from yarl import URL

from tadoasync import ComfortLevel, TadoClient, TimetableType, Zone

from .const import ACCOUNT, URL_AUTH, URL_HOME, URL_ME, ZONES, token_payload

if TYPE_CHECKING:
    from collections.abc import Generator

URL_ZONE = f"{URL_HOME}/zones/1"


@pytest.fixture
def zone(tado: TadoClient) -> Zone:
    return Zone(tado, ZONES[0])  # type: ignore[arg-type]


@pytest.fixture
def rsp() -> Generator[aioresponses]:
    with aioresponses() as m:
        m.post(URL_AUTH, payload=token_payload("token_1"))
        m.get(URL_ME, payload=ACCOUNT)
        yield m


def _sent(rsp: aioresponses, url: str, method: str = "PUT") -> Any:
    """Return the JSON of the last request."""
    return rsp.requests[(method, URL(url))][-1].kwargs["json"]


async def test_zone(zone: Zone) -> None:
    assert zone.id == 1
    assert zone.name == "Living room"
    assert zone.type == "HEATING"
    assert str(zone) == "Zone(id='1', name='Living room')"


async def test_get_state(zone: Zone, rsp: aioresponses) -> None:
    rsp.get(
        f"{URL_ZONE}/state",
        payload={
            "tadoMode": "HOME",
            "setting": {"type": "HEATING", "power": "ON", "temperature": {"celsius": 20}},
            "overlay": None,
        },
    )

    state = await zone.get_state()

    assert state["tado_mode"] == "HOME"
    assert state["overlay"] is None


async def test_get_day_report(zone: Zone, rsp: aioresponses) -> None:
    rsp.get(f"{URL_ZONE}/dayReport?date=2024-02-29", payload={"zoneType": "HEATING"})

    assert await zone.get_day_report(date(2024, 2, 29)) == {"zone_type": "HEATING"}


@pytest.mark.parametrize(
    ("temperature", "duration", "expected"),
    [
        (
            21.5,
            None,
            {
                "type": "MANUAL",
                "setting": {
                    "type": "HEATING",
                    "power": "ON",
                    "temperature": {"celsius": 21.5},
                },
                "termination": {"type": "MANUAL"},
            },
        ),
        (
            19,
            td(hours=1),
            {
                "type": "MANUAL",
                "setting": {
                    "type": "HEATING",
                    "power": "ON",
                    "temperature": {"celsius": 19},
                },
                "termination": {"type": "TIMER", "durationInSeconds": 3600},
            },
        ),
        (
            4.5,
            td(0),
            {
                "type": "MANUAL",
                "setting": {"type": "HEATING", "power": "OFF", "temperature": None},
                "termination": {"type": "MANUAL"},
            },
        ),
    ],
)
async def test_set_overlay(
    zone: Zone,
    rsp: aioresponses,
    temperature: float,
    duration: td | None,
    expected: dict[str, Any],
) -> None:
    """Test the overlay that is sent (its keys are camelCase)."""

    rsp.put(f"{URL_ZONE}/overlay", status=200, payload={})

    await zone.set_overlay(temperature, duration=duration)

    assert _sent(rsp, f"{URL_ZONE}/overlay") == expected


async def test_delete_overlay(zone: Zone, rsp: aioresponses) -> None:
    rsp.delete(f"{URL_ZONE}/overlay", status=204)

    await zone.delete_overlay()

    assert rsp.requests[("DELETE", URL(f"{URL_ZONE}/overlay"))]


async def test_early_start(zone: Zone, rsp: aioresponses) -> None:
    rsp.get(f"{URL_ZONE}/earlyStart", payload={"enabled": True})
    rsp.put(f"{URL_ZONE}/earlyStart", payload={"enabled": False})

    assert await zone.get_early_start() is True

    await zone.set_early_start(False)
    assert _sent(rsp, f"{URL_ZONE}/earlyStart") == {"enabled": False}


async def test_away_auto_adjust(zone: Zone, rsp: aioresponses) -> None:
    url = f"{URL_ZONE}/schedule/awayConfiguration"
    rsp.put(url, status=204)

    await zone.set_away_auto_adjust(ComfortLevel.BALANCE)

    assert _sent(rsp, url) == {
        "type": "HEATING",
        "autoAdjust": True,
        "comfortLevel": 50,
    }


async def test_away_auto_adjust_invalid(zone: Zone, rsp: aioresponses) -> None:
    """Test an invalid comfort level is rejected before any request is sent."""

    with pytest.raises(ValueError, match="invalid comfort level"):
        await zone.set_away_auto_adjust(42)

    assert not rsp.requests


@pytest.mark.parametrize(
    ("temperature", "setting"),
    [
        (16, {"type": "HEATING", "power": "ON", "temperature": {"celsius": 16}}),
        (5, {"type": "HEATING", "power": "OFF", "temperature": None}),
    ],
)
async def test_away_manual(
    zone: Zone, rsp: aioresponses, temperature: float, setting: dict[str, Any]
) -> None:
    url = f"{URL_ZONE}/schedule/awayConfiguration"
    rsp.put(url, status=204)

    await zone.set_away_manual(temperature)

    assert _sent(rsp, url) == {
        "type": "HEATING",
        "autoAdjust": False,
        "setting": setting,
    }


async def test_timetables(zone: Zone, rsp: aioresponses) -> None:
    url = f"{URL_ZONE}/schedule/activeTimetable"
    rsp.get(url, payload={"id": 1, "type": "THREE_DAY"})
    rsp.put(url, payload={"id": 2, "type": "SEVEN_DAY"})

    assert await zone.get_active_timetable() == {"id": 1, "type": "THREE_DAY"}

    await zone.set_active_timetable(TimetableType.SEVEN_DAY)
    assert _sent(rsp, url) == {"id": 2}


async def test_blocks(zone: Zone, rsp: aioresponses) -> None:
    url = f"{URL_ZONE}/schedule/timetables/1/blocks/SATURDAY"
    block = {
        "day_type": "SATURDAY",
        "start": "00:00",
        "end": "00:00",
        "geolocation_override": False,
        "setting": {"type": "HEATING", "power": "ON", "temperature": {"celsius": 18}},
    }
    rsp.get(url, payload=[{"dayType": "SATURDAY", "start": "00:00"}])
    rsp.put(url, payload=[])

    assert await zone.get_blocks(TimetableType.THREE_DAY, "SATURDAY") == [
        {"day_type": "SATURDAY", "start": "00:00"}
    ]

    await zone.set_blocks(TimetableType.THREE_DAY, "SATURDAY", [block])  # type: ignore[list-item]
    assert _sent(rsp, url)[0]["dayType"] == "SATURDAY"
    assert _sent(rsp, url)[0]["geolocationOverride"] is False


@pytest.mark.parametrize(
    ("timetable_id", "day_type"),
    [(0, "MONDAY"), (1, "MONDAY"), (2, "MONDAY_TO_FRIDAY"), (3, "MONDAY")],
)
async def test_blocks_invalid_day_type(
    zone: Zone, rsp: aioresponses, timetable_id: int, day_type: str
) -> None:
    """Test an invalid day type is rejected before any request is sent."""

    with pytest.raises(ValueError):
        await zone.get_blocks(timetable_id, day_type)

    with pytest.raises(ValueError):
        await zone.set_blocks(timetable_id, day_type, [])

    assert not rsp.requests
