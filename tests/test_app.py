import json
from datetime import datetime, timezone

import pygame
import pytest

from tsukimoon.app import (
    MAX_RESULTS,
    AppState,
    FrameAnimator,
    SearchModel,
    TsukiApp,
    main,
)
from tsukimoon.astronomy import MoonInfo
from tsukimoon.cities import City, Location, load_location

WHEN = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

PARIS = City("France", "Ile-de-France", "Paris", 48.8534, 2.3488)
TOKYO = City("Japan", "Tokyo", "Tokyo", 35.6895, 139.692)


def _save_frame(path, color):
    surface = pygame.Surface((2, 2))
    surface.fill(color)
    pygame.image.save(surface, str(path))
    return path


@pytest.fixture
def frames(tmp_path):
    return [
        _save_frame(tmp_path / "a.bmp", (255, 0, 0)),
        _save_frame(tmp_path / "b.bmp", (0, 0, 255)),
    ]


def _write_cities(base, cities):
    assets = base / "assets"
    assets.mkdir(exist_ok=True)
    records = [
        {"ct": c.country, "ad": c.admin, "nm": c.name, "lt": c.latitude, "ln": c.longitude}
        for c in cities
    ]
    (assets / "cities_data.json").write_text(json.dumps(records), encoding="utf-8")


def test_app_starts_in_main_view_and_returns_there(tmp_path):
    _write_cities(tmp_path, [PARIS])
    app = TsukiApp(tmp_path, when=WHEN, tz=timezone.utc)
    assert app.state is AppState.MAIN_VIEW
    app.state = AppState.SEARCH_VIEW
    app.select_city(PARIS)
    assert app.state is AppState.MAIN_VIEW
    assert {s.name for s in AppState} == {"MAIN_VIEW", "SEARCH_VIEW"}


def test_animator_load_and_advance(frames):
    animator = FrameAnimator(0.5, clock=lambda: 0.0)
    assert animator.load(frames) is True
    assert animator.frame_count == 2
    animator.update(now=0.4)
    assert animator.current_frame == 0
    animator.update(now=0.5)
    assert animator.current_frame == 1
    animator.update(now=1.0)
    assert animator.current_frame == 0


def test_animator_single_frame_never_advances(frames):
    animator = FrameAnimator(0.5, clock=lambda: 0.0)
    assert animator.load(frames[:1])
    animator.update(now=10.0)
    assert animator.current_frame == 0


def test_animator_missing_frame_keeps_nothing(frames, tmp_path):
    animator = FrameAnimator(0.5, clock=lambda: 0.0)
    assert animator.load([frames[0], tmp_path / "missing.bmp"]) is False
    assert animator.frame_count == 0


def test_animator_empty_list_fails():
    animator = FrameAnimator(0.5, clock=lambda: 0.0)
    assert animator.load([]) is False


def test_animator_draw_scaled_and_positioned(frames):
    animator = FrameAnimator(0.5, clock=lambda: 0.0)
    animator.load(frames)
    animator.set_position(1, 1)
    animator.set_size(4, 4)
    target = pygame.Surface((10, 10))
    target.fill((0, 0, 0))
    animator.draw(target)
    assert tuple(target.get_at((1, 1)))[:3] == (255, 0, 0)
    assert tuple(target.get_at((4, 4)))[:3] == (255, 0, 0)
    assert tuple(target.get_at((5, 5)))[:3] == (0, 0, 0)
    assert tuple(target.get_at((0, 0)))[:3] == (0, 0, 0)

    animator.update(now=0.5)
    animator.draw(target)
    assert tuple(target.get_at((2, 2)))[:3] == (0, 0, 255)


def test_search_typing_and_backspace():
    model = SearchModel([PARIS, TOKYO])
    assert model.type_char(ord("t")) is True
    assert model.query == "t"
    assert model.results == [TOKYO]
    model.type_char(8)
    assert model.query == ""
    assert model.results == []
    model.type_char(8)
    assert model.query == ""


def test_search_ignores_non_ascii():
    model = SearchModel([PARIS])
    model.type_char(ord("p"))
    assert model.type_char(233) is False
    assert model.query == "p"
    assert model.results == [PARIS]


def test_search_result_limit():
    towns = [City("Land", "Region", f"Town{i}", 0.0, 0.0) for i in range(20)]
    model = SearchModel(towns)
    model.type_char(ord("t"))
    assert len(model.results) == MAX_RESULTS
    assert model.results == towns[:MAX_RESULTS]


def test_search_clear():
    model = SearchModel([PARIS])
    model.type_char(ord("p"))
    model.clear()
    assert (model.query, model.results) == ("", [])


def test_result_at_rows():
    model = SearchModel([PARIS, TOKYO], measure=lambda text: (100.0, 20.0))
    model.type_char(ord(","))
    assert model.results == [PARIS, TOKYO]
    assert model.result_at(81, 159) == PARIS
    assert model.result_at(81, 159 + 27) == TOKYO
    assert model.result_at(79, 159) is None
    assert model.result_at(81, 159 + 27 * 2) is None


def test_app_creates_default_location(tmp_path):
    _write_cities(tmp_path, [PARIS, TOKYO])
    app = TsukiApp(tmp_path, when=WHEN, tz=timezone.utc)
    assert app.location == Location("McMurdo Station", -77.846323, 166.668235)
    assert (tmp_path / "location.txt").exists()
    assert app.cities == [PARIS, TOKYO]
    assert app.state is AppState.MAIN_VIEW
    assert app.moon_info == MoonInfo.compute(-77.846323, 166.668235, WHEN, timezone.utc)


def test_app_without_city_file(tmp_path):
    app = TsukiApp(tmp_path, when=WHEN, tz=timezone.utc)
    assert app.cities == []
    assert app.search.type_char(ord("a"))
    assert app.search.results == []


def test_select_city_saves_and_returns_to_main(tmp_path):
    _write_cities(tmp_path, [PARIS, TOKYO])
    app = TsukiApp(tmp_path, when=WHEN, tz=timezone.utc)
    app.state = AppState.SEARCH_VIEW
    app.search.type_char(ord("p"))
    app.select_city(PARIS)
    expected = Location(PARIS.name, PARIS.latitude, PARIS.longitude)
    assert app.location == expected
    assert load_location(tmp_path / "location.txt") == expected
    assert app.state is AppState.MAIN_VIEW
    assert app.search.query == ""
    assert app.search.results == []
    assert app.moon_info == MoonInfo.compute(PARIS.latitude, PARIS.longitude, WHEN, timezone.utc)


def test_app_reads_saved_location(tmp_path):
    (tmp_path / "location.txt").write_text("Tokyo\n35.6895\n139.692", encoding="utf-8")
    app = TsukiApp(tmp_path, when=WHEN, tz=timezone.utc)
    assert app.location == Location("Tokyo", 35.6895, 139.692)


def test_main_fails_without_assets(tmp_path, monkeypatch):
    monkeypatch.setenv("SDL_VIDEODRIVER", "dummy")
    monkeypatch.setenv("SDL_AUDIODRIVER", "dummy")
    assert main([str(tmp_path)]) == 1
    assert (tmp_path / "location.txt").exists()