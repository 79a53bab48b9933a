"""tadoasync schema - shared types (WIP)."""

from __future__ import annotations

from typing import Any, Literal, NotRequired, TypeAlias, TypedDict

#######################################################################################
# GET Account/Home Info...
# NOTE: dicts are not completely typed, but all referenced keys should be present


class TadoHomeEntryT(TypedDict):
    id: int
    name: str


# GET /me returns this dict
class TadoAccountResponseT(TypedDict):
    """Response to GET /me."""

    id: str
    name: str
    email: str
    username: str
    locale: NotRequired[str]
    homes: list[TadoHomeEntryT]
    mobile_devices: NotRequired[list[TadoMobileDeviceResponseT]]


# GET /homes/{home_id} returns this dict
class TadoHomeInfoResponseT(TypedDict):
    """Response to GET /homes/{home_id}."""

    id: int
    name: str
    date_time_zone: str
    temperature_unit: NotRequired[str]
    address: NotRequired[dict[str, Any]]


class TadoTemperatureT(TypedDict):
    celsius: float
    fahrenheit: NotRequired[float]


class TadoPercentageT(TypedDict):
    percentage: float


# GET /homes/{home_id}/weather returns this dict
class TadoWeatherResponseT(TypedDict):
    """Response to GET /homes/{home_id}/weather."""

    solar_intensity: TadoPercentageT
    outside_temperature: TadoTemperatureT
    weather_state: dict[str, Any]


# GET /homes/{home_id}/mobileDevices returns a list of these dicts
class TadoMobileDeviceResponseT(TypedDict):
    id: int
    name: str
    settings: dict[str, Any]
    location: NotRequired[dict[str, Any]]
    device_metadata: NotRequired[dict[str, Any]]


# GET /homes/{home_id}/zones returns a list of these dicts
class TadoZoneResponseT(TypedDict):
    """Response to GET /homes/{home_id}/zones (a list of these dicts)."""

    id: int
    name: str
    type: str  # "HEATING", "HOT_WATER", "AIR_CONDITIONING"
    devices: NotRequired[list[dict[str, Any]]]
    device_types: NotRequired[list[str]]


# GET /homes/{home_id}/zones/{zone_id}/state returns this dict
class TadoZoneStateResponseT(TypedDict):
    tado_mode: str
    setting: TadoZoneSettingT
    overlay: NotRequired[dict[str, Any] | None]
    sensor_data_points: NotRequired[dict[str, Any]]
    activity_data_points: NotRequired[dict[str, Any]]


class TadoTimetableT(TypedDict):
    id: int
    type: NotRequired[str]  # "ONE_DAY", "THREE_DAY", "SEVEN_DAY"


class TadoBlockT(TypedDict):
    """A schedule block (of a day type) of a timetable."""

    day_type: str
    start: str  # "07:00"
    end: str
    geolocation_override: bool
    setting: TadoZoneSettingT


#######################################################################################
# PUT Zone Overlay/Setting...


class TadoZoneSettingT(TypedDict):
    type: str  # "HEATING"
    power: Literal["ON", "OFF"]
    temperature: TadoTemperatureT | None


class TadoTerminationT(TypedDict):
    type: Literal["MANUAL", "TIMER", "TADO_MODE"]
    duration_in_seconds: NotRequired[int]


class TadoOverlayT(TypedDict):
    """Request body of PUT /homes/{home_id}/zones/{zone_id}/overlay."""

    type: Literal["MANUAL"]
    setting: TadoZoneSettingT
    termination: TadoTerminationT


class TadoAwayConfigurationT(TypedDict):
    type: str  # "HEATING"
    auto_adjust: bool
    comfort_level: NotRequired[int]
    setting: NotRequired[TadoZoneSettingT]


#######################################################################################
# GET Reports...


class TadoConsumptionResponseT(TypedDict):
    """Response to GET /homes/{home_id}/consumption (insights)."""

    currency: NotRequired[str]
    details: NotRequired[dict[str, Any]]
    summary: NotRequired[dict[str, Any]]
    graph_conversion_factor: NotRequired[float]
    unit: NotRequired[str]


class TadoEnergySavingsReportT(TypedDict):
    year_month: str
    total_savings: NotRequired[dict[str, Any]]


class TadoRunningTimeT(TypedDict):
    start_time: str
    end_time: str
    running_time_in_seconds: int
    zones: NotRequired[list[dict[str, Any]]]


_JsonT: TypeAlias = dict[str, Any] | list[Any] | None
