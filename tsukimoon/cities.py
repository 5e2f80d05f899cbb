"""City catalogue, search, saved location and display helpers."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Iterable, Union

from tsukimoon.astronomy import MoonInfo

log = logging.getLogger(__name__)

StrPath = Union[str, "PathLike[str]"]

MAX_RESULTS = 15
LABEL_LIMIT = 21
DEFAULT_PHASE_IMAGE = "assets/new_moon.png"

PHASE_IMAGES = {
    "New": "assets/new_moon.png",
    "Waxing Crescent": "assets/waxing_crescent.png",
    "First Quarter": "assets/first_quarter.png",
    "Waxing Gibbous": "assets/waxing_gibbous.png",
    "Full": "assets/full_moon.png",
    "Waning Gibbous": "assets/waning_gibbous.png",
    "Last Quarter": "assets/last_quarter.png",
    "Waning Crescent": "assets/waning_crescent.png",
}

HIGHLIGHT_TOP = 158.0
HIGHLIGHT_BOTTOM = 569.0
HIGHLIGHT_ROW_HEIGHT = 27.466666667
HIGHLIGHT_ROWS = (
    158.0,
    185.46666667,
    212.93333333,
    240.4,
    267.86666667,
    295.333333333,
    322.8,
    350.26666667,
    377.733333333,
    405.2,
    432.66666667,
    460.1333333,
    487.6,
    515.06666667,
    542.5333333,
)

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")

_LEADING_FLOAT = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class City:
    """A named place with its administrative region, country and coordinates."""

    country: str
    admin: str
    name: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Location:
    """The observer's chosen place."""

    name: str
    latitude: float
    longitude: float


DEFAULT_LOCATION = Location("McMurdo Station", -77.846323, 166.668235)
_DEFAULT_LOCATION_TEXT = "McMurdo Station\n-77.846323\n166.668235"


def _ascii_lower(text: str) -> str:
    return text.translate(_ASCII_LOWER)


def _string_field(record: dict, key: str) -> str:
    value = record[key]
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} is not a string")
    return value


def _number_field(record: dict, key: str) -> float:
    value = record[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"field {key!r} is not a number")
    return float(value)


def load_cities(path: StrPath) -> list[City]:
    """Read the city catalogue; malformed entries are skipped with a warning.

    Raises OSError if the file cannot be read and ValueError if it is not a
    JSON array.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError("city data is not a JSON array")

    cities: list[City] = []
    for record in data:
        try:
            if not isinstance(record, dict):
                raise TypeError("entry is not an object")
            cities.append(
                City(
                    country=_string_field(record, "ct"),
                    admin=_string_field(record, "ad"),
                    name=_string_field(record, "nm"),
                    latitude=_number_field(record, "lt"),
                    longitude=_number_field(record, "ln"),
                )
            )
        except (KeyError, TypeError) as exc:
            log.warning("Error processing city data: %s", exc)
    return cities


def parse_query(query: str) -> list[str]:
    """Split a ``name, admin, country`` query into trimmed lower-case terms."""
    if not query:
        return []
    parts = query.split(",")
    if parts[-1] == "":
        parts.pop()
    return [_ascii_lower(part.strip(" ")) for part in parts]


def _matches(city: City, terms: list[str]) -> bool:
    fields = (city.name, city.admin, city.country)
    return all(
        not term or _ascii_lower(field).startswith(term)
        for term, field in zip(terms, fields)
    )


def search_cities(query: str, cities: Iterable[City], limit: int = MAX_RESULTS) -> list[City]:
    """Cities whose name, admin and country start with the query's terms."""
    terms = parse_query(query)
    if not query:
        return []
    results: list[City] = []
    for city in cities:
        if not _matches(city, terms):
            continue
        if len(results) >= limit:
            break
        results.append(city)
    return results


def result_label(city: City) -> str:
    """Text of a search result, cut to 21 bytes plus an ellipsis when longer."""
    label = f"{city.name}, {city.admin}, {city.country}"
    encoded = label.encode("utf-8")
    if len(encoded) > LABEL_LIMIT:
        return encoded[:LABEL_LIMIT].decode("utf-8", errors="ignore") + "..."
    return label


def _parse_leading_float(text: str) -> float:
    match = _LEADING_FLOAT.match(text)
    if match is None:
        raise ValueError(f"not a number: {text!r}")
    return float(match.group(1))


def load_location(path: StrPath) -> Location:
    """Read the saved location, creating the file with the default if absent."""
    location_path = Path(path)
    if not location_path.exists():
        location_path.write_text(_DEFAULT_LOCATION_TEXT, encoding="utf-8")

    name = ""
    latitude = 0.0
    longitude = 0.0
    with location_path.open(encoding="utf-8") as handle:
        for index, raw in enumerate(handle):
            line = raw.rstrip("\n")
            if index == 0:
                name = line
            elif index == 1:
                latitude = _parse_leading_float(line)
            else:
                longitude = _parse_leading_float(line)
                break
    return Location(name, latitude, longitude)


def save_location(path: StrPath, location: Location) -> None:
    """Write the location as three lines: name, latitude, longitude."""
    Path(path).write_text(
        f"{location.name}\n{location.latitude:g}\n{location.longitude:g}",
        encoding="utf-8",
    )


def phase_image(phase: str) -> str:
    """Image file for a phase name, falling back to the new-moon image."""
    image = PHASE_IMAGES.get(phase)
    if image is None:
        log.warning("Could not find image for phase: %s. Defaulting to new moon.", phase)
        return DEFAULT_PHASE_IMAGE
    return image


def info_text(info: MoonInfo) -> str:
    """The four-line information panel text."""
    return (
        f"Illumination: {info.illumination}%\n"
        f"Phase: {info.phase}\n"
        f"Moonrise: {info.rise_time}\n"
        f"Moonset: {info.set_time}"
    )


def highlight_row(mouse_y: float, result_count: int) -> float | None:
    """Vertical position of the result row under the pointer, if it holds a result."""
    if not HIGHLIGHT_TOP <= mouse_y <= HIGHLIGHT_BOTTOM:
        return None
    row = int((mouse_y - HIGHLIGHT_TOP) / HIGHLIGHT_ROW_HEIGHT)
    if row >= len(HIGHLIGHT_ROWS) or row + 1 > result_count:
        return None
    return HIGHLIGHT_ROWS[row]