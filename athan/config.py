"""Geographic and calculation-method configuration, loaded once at startup."""

import json
import os
from dataclasses import asdict, dataclass

import pytz
from adhanpy.calculation.CalculationMethod import CalculationMethod
from adhanpy.calculation.Madhab import Madhab

from athan.errors import ConfigurationError


DEFAULT_CONFIG = {
    "latitude": 29.3117,
    "longitude": 47.4818,
    "method": "KUWAIT",
    "madhab": "SHAFI",
    "timezone": "Asia/Kuwait",
}

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".athan")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")


@dataclass(frozen=True)
class GeoConfig:
    latitude: float
    longitude: float
    calculation_method: CalculationMethod
    madhab: Madhab
    timezone: str

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ConfigurationError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ConfigurationError(f"Longitude out of range: {self.longitude}")
        if not isinstance(self.calculation_method, CalculationMethod):
            raise ConfigurationError(f"Unknown calculation method: {self.calculation_method!r}")
        if not isinstance(self.madhab, Madhab):
            raise ConfigurationError(f"Unknown madhab: {self.madhab!r}")
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError as exc:
            raise ConfigurationError(f"Unknown time zone: {self.timezone}") from exc

    @property
    def tz(self):
        return pytz.timezone(self.timezone)

    @property
    def coordinates(self) -> tuple:
        return (self.latitude, self.longitude)

    @classmethod
    def from_dict(cls, data: dict) -> "GeoConfig":
        """
        Build a GeoConfig from a plain dict as stored in the config file.

        Method and madhab are given by enum member name, e.g. "KUWAIT" and
        "SHAFI". Raises ConfigurationError on missing keys or bad values.
        """
        missing = [k for k in DEFAULT_CONFIG if k not in data]
        if missing:
            raise ConfigurationError(f"Config is missing keys: {', '.join(missing)}")
        try:
            method = CalculationMethod[str(data["method"]).upper()]
        except KeyError as exc:
            raise ConfigurationError(f"Unknown calculation method: {data['method']}") from exc
        try:
            madhab = Madhab[str(data["madhab"]).upper()]
        except KeyError as exc:
            raise ConfigurationError(f"Unknown madhab: {data['madhab']}") from exc
        try:
            lat = float(data["latitude"])
            lon = float(data["longitude"])
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Latitude and longitude must be numbers") from exc
        return cls(
            latitude=lat,
            longitude=lon,
            calculation_method=method,
            madhab=madhab,
            timezone=str(data["timezone"]),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "latitude": data["latitude"],
            "longitude": data["longitude"],
            "method": self.calculation_method.name,
            "madhab": self.madhab.name,
            "timezone": data["timezone"],
        }


def load_config(path: str = None) -> GeoConfig:
    """
    Load the configuration from path (default CONFIG_FILE).

    A missing file yields the built-in defaults. A file that exists but
    cannot be parsed raises ConfigurationError rather than falling back.
    """
    path = path or CONFIG_FILE
    if not os.path.isfile(path):
        return GeoConfig.from_dict(DEFAULT_CONFIG)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Could not read config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must hold a JSON object")
    return GeoConfig.from_dict(data)


def save_config(geo: GeoConfig, path: str = None) -> None:
    """Write geo to path (default CONFIG_FILE)."""
    path = path or CONFIG_FILE
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(geo.to_dict(), f, indent=2)
