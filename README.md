# tsukimoon

A small borderless window that shows the Moon for the current day: its
phase, how much of it is lit, and when it rises and sets where you are. It
uses a compact lunar theory. The figures are fine for planning a walk but
not accurate enough for an observatory.

## Installing

```
pip install tsukimoon
```

## Running

```
tsuki [DIRECTORY]
```

`DIRECTORY` defaults to the current directory. It must contain an `assets/`
folder with these files:

- the window images `background.png`, `search.png`, `exit.png`,
  `exit_hover.png`, `globe.png`, `globe_hover.png`, `back.png`,
  `back_hover.png` and `stars1.png` to `stars6.png`
- the moon images named in `tsukimoon.cities.PHASE_IMAGES`. When a phase
  has no entry there, `new_moon.png` is used.
- `click.wav`
- optionally `Pixellari.ttf`. Without it, pygame's default font is used.
- `cities_data.json`, a JSON array of objects with the keys `nm` (name),
  `ad` (region), `ct` (country), `lt` (latitude) and `ln` (longitude).
  Entries that are malformed are skipped with a warning. If the file is
  missing, the search finds nothing.

If an image or the click sound is missing, the command logs the error and
exits with status 1. If audio cannot be started, clicks are silent.

Using the window:

- Drag the window by its top strip.
- Click the globe to search for a city. Type `name`, `name, region` or
  `name, region, country`. Each part matches the start of the field, and
  letter case is ignored. At most 15 results are shown.
- Click a result to pick it. The choice is written to `location.txt` in
  `DIRECTORY` and read again on the next start. If the file does not exist,
  it is created with McMurdo Station.
- Click the back button to leave the search, or the exit button to close
  the window.

Times are shown on a 12-hour clock in the system's local time zone. When
the Moon does not cross the horizon during the local day, the window shows
"Always Above Horizon", "Always Below Horizon" or "N/A".

## Using the calculations directly

```python
from datetime import datetime, timezone
from tsukimoon.astronomy import MoonInfo, julian_day, phase_and_illumination

info = MoonInfo.compute(51.5, -0.12, datetime.now(timezone.utc), timezone.utc)
print(info.phase, info.illumination, info.rise_time, info.set_time)

jd = julian_day(datetime(2024, 1, 1, tzinfo=timezone.utc))
print(phase_and_illumination(jd))
```

`tsukimoon.astronomy` also provides the lower-level functions:

- `solar_coordinates` and `lunar_coordinates`
- `moon_altitude`
- `illuminated_fraction`
- `rise_and_set`
- `local_midnight_jd`
- `julian_day_to_datetime`

`tsukimoon.cities` holds the city catalogue and location helpers:

- `load_cities`, `search_cities` and `parse_query`
- `result_label`
- `load_location` and `save_location`
- `info_text`

## What it does not do

There is no text-only mode. The only command opens the window. The package
does not include the assets or the city catalogue. You supply them in the
directory described above.

## Tests

```
pip install "tsukimoon[test]"
pytest
```