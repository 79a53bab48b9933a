"""Provides handling of tado° zones (heating)."""

from __future__ import annotations

from enum import IntEnum
from functools import cached_property
from http import HTTPMethod
from typing import TYPE_CHECKING, Any, Final

from .schemas import TADO_GET_DICT, TADO_GET_LIST

if TYPE_CHECKING:
    from datetime import date, timedelta as td

    from .main import TadoClient
    from .typedefs import (
        TadoAwayConfigurationT,
        TadoBlockT,
        TadoOverlayT,
        TadoTerminationT,
        TadoTimetableT,
        TadoZoneResponseT,
        TadoZoneSettingT,
        TadoZoneStateResponseT,
    )


API_STRFTIME: Final = "%Y-%m-%d"

SZ_HEATING: Final = "HEATING"

# below this temperature, an overlay will switch the zone off
MIN_OVERLAY_TEMPERATURE: Final = 5.0


class ComfortLevel(IntEnum):
    """When to re-heat a zone (that was switched off whilst away) as users return."""

    ECO = 0
    BALANCE = 50
    COMFORT = 100


class TimetableType(IntEnum):
    ONE_DAY = 0
    THREE_DAY = 1
    SEVEN_DAY = 2


DAY_TYPES: Final[dict[int, frozenset[str]]] = {
    TimetableType.ONE_DAY: frozenset({"MONDAY_TO_SUNDAY"}),
    TimetableType.THREE_DAY: frozenset({"MONDAY_TO_FRIDAY", "SATURDAY", "SUNDAY"}),
    TimetableType.SEVEN_DAY: frozenset(
        {"MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"}
    ),
}


def validate_day_type(timetable_id: int, day_type: str) -> None:
    """Raise ValueError if the day type is not one of the timetable's day types."""

    if (day_types := DAY_TYPES.get(timetable_id)) is None:
        raise ValueError(f"invalid timetable id: {timetable_id}")
    if day_type not in day_types:
        raise ValueError(
            f"invalid day type '{day_type}' for timetable id {timetable_id}"
        )


def _heating_setting(temperature: float | None) -> TadoZoneSettingT:
    """Return a heating setting; if there is no temperature, the power is OFF."""

    if temperature is None:
        return {"type": SZ_HEATING, "power": "OFF", "temperature": None}
    return {"type": SZ_HEATING, "power": "ON", "temperature": {"celsius": temperature}}


class Zone:
    """Instance of a zone of a home."""

    def __init__(self, client: TadoClient, config: TadoZoneResponseT) -> None:
        self._client = client
        self._logger = client.logger

        self._config: Final = config
        self._id: Final[int] = config["id"]

    def __str__(self) -> str:
        """Return a string representation of the entity."""
        return f"{self.__class__.__name__}(id='{self._id}', name='{self.name}')"

    @cached_property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        return self._config.get("name", "")

    @property
    def type(self) -> str:
        return self._config.get("type", "")

    @property
    def config(self) -> TadoZoneResponseT:
        """Return the config of the zone (as per GET /zones)."""
        return self._config

    async def _get(self, endpoint: str, schema: Any = TADO_GET_DICT) -> Any:
        return await self._client.call(
            HTTPMethod.GET, "myTado", f"/zones/{self._id}{endpoint}", schema=schema
        )

    async def _put(self, endpoint: str, json: dict[str, Any] | list[Any]) -> None:
        await self._client.call(
            HTTPMethod.PUT, "myTado", f"/zones/{self._id}{endpoint}", json=json
        )

    # State & config...

    async def get_state(self) -> TadoZoneStateResponseT:
        """Return the state of the zone (setting, overlay, sensor data...)."""
        return await self._get("/state")  # type: ignore[no-any-return]

    async def get_capabilities(self) -> dict[str, Any]:
        return await self._get("/capabilities")  # type: ignore[no-any-return]

    async def get_measuring_device(self) -> dict[str, Any]:
        return await self._get("/measuringDevice")  # type: ignore[no-any-return]

    async def get_day_report(self, day: date) -> dict[str, Any]:
        """Return the report of the zone for the day (temperatures, call for heat...)."""
        return await self._get(f"/dayReport?date={day.strftime(API_STRFTIME)}")  # type: ignore[no-any-return]

    async def get_early_start(self) -> bool:
        """Return True if the zone will start heating early, to reach its setpoint."""

        response: dict[str, Any] | None = await self._get("/earlyStart")
        return bool((response or {}).get("enabled"))

    async def set_early_start(self, enabled: bool) -> None:
        await self._put("/earlyStart", {"enabled": enabled})

    # Overlays...

    async def set_overlay(
        self, temperature: float, /, *, duration: td | None = None
    ) -> None:
        """Set a manual temperature (an overlay), for a duration or until changed.

        A temperature below 5 °C will switch the zone off.
        """

        termination: TadoTerminationT
        if duration is not None and duration.total_seconds() > 0:
            termination = {
                "type": "TIMER",
                "duration_in_seconds": int(duration.total_seconds()),
            }
        else:
            termination = {"type": "MANUAL"}

        overlay: TadoOverlayT = {
            "type": "MANUAL",
            "setting": _heating_setting(
                None if temperature < MIN_OVERLAY_TEMPERATURE else temperature
            ),
            "termination": termination,
        }

        await self._put("/overlay", dict(overlay))

    async def delete_overlay(self) -> None:
        """Cancel any overlay, so the zone will follow its schedule."""

        await self._client.call(
            HTTPMethod.DELETE, "myTado", f"/zones/{self._id}/overlay"
        )

    # Away configuration...

    async def get_away_configuration(self) -> TadoAwayConfigurationT:
        return await self._get("/schedule/awayConfiguration")  # type: ignore[no-any-return]

    async def set_away_auto_adjust(self, comfort_level: ComfortLevel | int) -> None:
        """Switch the zone off whilst away; the comfort level sets when to re-heat."""

        if comfort_level not in tuple(ComfortLevel):
            raise ValueError(f"invalid comfort level: {comfort_level}")

        config: TadoAwayConfigurationT = {
            "type": SZ_HEATING,
            "auto_adjust": True,
            "comfort_level": int(comfort_level),
        }
        await self._put("/schedule/awayConfiguration", dict(config))

    async def set_away_manual(self, temperature: float) -> None:
        """Heat the zone to a temperature whilst away (at or below 5 °C is off)."""

        config: TadoAwayConfigurationT = {
            "type": SZ_HEATING,
            "auto_adjust": False,
            "setting": _heating_setting(
                None if temperature <= MIN_OVERLAY_TEMPERATURE else temperature
            ),
        }
        await self._put("/schedule/awayConfiguration", dict(config))

    # Schedules (timetables)...

    async def get_timetables(self) -> list[TadoTimetableT]:
        """Return the available timetables (one-day, three-day, seven-day)."""
        return await self._get("/schedule/timetables", schema=TADO_GET_LIST) or []

    async def get_active_timetable(self) -> TadoTimetableT:
        return await self._get("/schedule/activeTimetable")  # type: ignore[no-any-return]

    async def set_active_timetable(self, timetable: TadoTimetableT | int) -> None:
        """Select the active timetable (e.g. TimetableType.SEVEN_DAY)."""

        if isinstance(timetable, int):
            timetable = {"id": int(timetable)}
        await self._put("/schedule/activeTimetable", dict(timetable))

    async def get_blocks(
        self, timetable_id: int, day_type: str | None = None
    ) -> list[TadoBlockT]:
        """Return the schedule blocks of a timetable (optionally, only of a day type)."""

        endpoint = f"/schedule/timetables/{timetable_id}/blocks"
        if day_type is not None:
            validate_day_type(timetable_id, day_type)
            endpoint += f"/{day_type}"

        return await self._get(endpoint, schema=TADO_GET_LIST) or []

    async def set_blocks(
        self, timetable_id: int, day_type: str, blocks: list[TadoBlockT]
    ) -> None:
        """Replace the schedule blocks of a day type of a timetable."""

        validate_day_type(timetable_id, day_type)

        await self._put(
            f"/schedule/timetables/{timetable_id}/blocks/{day_type}",
            [dict(b) for b in blocks],
        )
