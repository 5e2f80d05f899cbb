"""The moon viewer window: star animation, moon display and city search."""

from __future__ import annotations

import argparse
import enum
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, Union

import pygame

from tsukimoon.astronomy import MoonInfo
from tsukimoon.cities import (
    HIGHLIGHT_TOP,
    MAX_RESULTS,
    City,
    Location,
    highlight_row,
    info_text,
    load_cities,
    load_location,
    phase_image,
    result_label,
    save_location,
    search_cities,
)

try:
    from pygame._sdl2.video import Window as _SdlWindow
except ImportError:  # pragma: no cover - depends on the pygame build
    _SdlWindow = None

log = logging.getLogger(__name__)

FRAME_WIDTH = 400
FRAME_HEIGHT = 600
LOCATION_BUTTONS_POS = (280, 12)
EXIT_BUTTON_POS = (340, 12)
STAR_AREA_X = 12
STAR_AREA_Y = 77
STAR_AREA_WIDTH = 376
STAR_AREA_HEIGHT = 344
INFO_PANEL_X = 12
INFO_PANEL_Y = 433
SEARCH_BAR_X = 80
SEARCH_BAR_Y = 91

RESULT_CHAR_SIZE = 25
RESULT_START_Y = SEARCH_BAR_Y + 67.5
RESULT_LINE_SPACING = 27.0
CITY_CHAR_SIZE = 20
INFO_CHAR_SIZE = 29
CITY_TEXT_CENTER_X = 200
CITY_TEXT_Y = 76.5
DRAG_AREA_HEIGHT = 60
HIGHLIGHT_X = 75
HIGHLIGHT_SIZE = (286, 27.466)
STAR_FRAME_SECONDS = 0.5
STAR_FRAME_COUNT = 6
FRAME_RATE = 60
BACKSPACE = 8

YELLOW = (255, 255, 0)
HIGHLIGHT_COLOR = (251, 65, 65)
BLACK = (0, 0, 0)

StrPath = Union[str, "os.PathLike[str]"]
Measure = Callable[[str], "tuple[float, float]"]


class AppState(enum.Enum):
    """Which screen the window shows."""

    MAIN_VIEW = "main"
    SEARCH_VIEW = "search"


class FrameAnimator:
    """A looping sequence of images shown one after another at a fixed pace."""

    def __init__(self, frame_duration: float, clock: Callable[[], float] = time.monotonic):
        self.frame_duration = frame_duration
        self._clock = clock
        self._frames: list[pygame.Surface] = []
        self.current_frame = 0
        self.position = (0.0, 0.0)
        self._scale = (1.0, 1.0)
        self._last_switch = clock()

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def load(self, filenames: Iterable[StrPath]) -> bool:
        """Load every frame; on any failure no frames are kept and False is returned."""
        frames: list[pygame.Surface] = []
        for filename in filenames:
            try:
                frames.append(pygame.image.load(os.fspath(filename)))
            except (pygame.error, OSError):
                log.error("Failed to load animation frame: %s", filename)
                self._frames = []
                return False
        self._frames = frames
        if not frames:
            return False
        self.current_frame = 0
        self._last_switch = self._clock()
        return True

    def set_position(self, x: float, y: float) -> None:
        if self._frames:
            self.position = (x, y)

    def set_size(self, width: float, height: float) -> None:
        """Scale frames so that the first one covers ``width`` by ``height``."""
        if not self._frames:
            return
        original_w, original_h = self._frames[0].get_size()
        if original_w == 0 or original_h == 0:
            return
        self._scale = (width / original_w, height / original_h)

    def update(self, now: Optional[float] = None) -> None:
        """Advance to the next frame once the frame duration has elapsed."""
        if len(self._frames) <= 1:
            return
        if now is None:
            now = self._clock()
        if now - self._last_switch >= self.frame_duration:
            self.current_frame = (self.current_frame + 1) % len(self._frames)
            self._last_switch = now

    def draw(self, surface: pygame.Surface) -> None:
        if not self._frames:
            return
        frame = self._frames[self.current_frame]
        width, height = frame.get_size()
        scale_x, scale_y = self._scale
        size = (round(width * scale_x), round(height * scale_y))
        if size != (width, height):
            frame = pygame.transform.scale(frame, size)
        x, y = self.position
        surface.blit(frame, (round(x), round(y)))


def _estimate_text_size(text: str) -> tuple[float, float]:
    return len(text) * RESULT_CHAR_SIZE / 2.0, float(RESULT_CHAR_SIZE)


class SearchModel:
    """The search box text and the cities it currently matches."""

    def __init__(self, cities: Iterable[City], measure: Optional[Measure] = None):
        self.cities = list(cities)
        self.query = ""
        self.results: list[City] = []
        self.measure: Measure = measure or _estimate_text_size

    def type_char(self, code: int) -> bool:
        """Apply one typed character; False when it is outside ASCII and ignored."""
        if code >= 128:
            return False
        if code == BACKSPACE:
            if self.query:
                self.query = self.query[:-1]
        else:
            self.query += chr(code)
        self.results = search_cities(self.query, self.cities, MAX_RESULTS)
        return True

    def clear(self) -> None:
        self.query = ""
        self.results = []

    def _row_box(self, index: int, label: str) -> tuple[float, float, float, float]:
        width, height = self.measure(label)
        return SEARCH_BAR_X, RESULT_START_Y + index * RESULT_LINE_SPACING, width, height

    def result_at(self, x: float, y: float) -> Optional[City]:
        """The result whose text lies under the point, if any."""
        for index, city in enumerate(self.results):
            left, top, width, height = self._row_box(index, result_label(city))
            if left <= x < left + width and top <= y < top + height:
                return city
        return None


@dataclass
class _Graphics:
    background: pygame.Surface
    search: pygame.Surface
    exit: pygame.Surface
    exit_hover: pygame.Surface
    globe: pygame.Surface
    globe_hover: pygame.Surface
    back: pygame.Surface
    back_hover: pygame.Surface
    stars: FrameAnimator
    city_font: pygame.font.Font
    result_font: pygame.font.Font
    info_font: pygame.font.Font
    click: Optional[pygame.mixer.Sound]
    moon: Optional[pygame.Surface] = None


def _load_world(path: Path) -> list[City]:
    try:
        return load_cities(path)
    except (OSError, ValueError) as exc:
        log.error("Error loading JSON file: %s", exc)
        return []


class TsukiApp:
    """The application: saved location, moon state, search and the window."""

    def __init__(
        self,
        base_dir: StrPath = ".",
        *,
        when: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
    ):
        self.base_dir = Path(base_dir)
        self.assets_dir = self.base_dir / "assets"
        self.location_path = self.base_dir / "location.txt"
        self._when = when
        self._tz = tz
        self.location: Location = load_location(self.location_path)
        self.moon_info = self._compute(self.location)
        self.cities = _load_world(self.assets_dir / "cities_data.json")
        self.search = SearchModel(self.cities)
        self.state = AppState.MAIN_VIEW
        self.running = False
        self._highlight_y = HIGHLIGHT_TOP
        self._city_results = 0
        self._dragging = False
        self._drag_origin = (0, 0)
        self._window = None
        self._gfx: Optional[_Graphics] = None

    def _compute(self, location: Location) -> MoonInfo:
        return MoonInfo.compute(location.latitude, location.longitude, self._when, self._tz)

    def select_city(self, city: City) -> None:
        """Make ``city`` the observer's location, save it and return to the main view."""
        self.location = Location(city.name, city.latitude, city.longitude)
        self.moon_info = self._compute(self.location)
        if self._gfx is not None:
            self._refresh_moon(fatal=False)
        self.state = AppState.MAIN_VIEW
        save_location(self.location_path, self.location)
        self.search.clear()

    # --- graphics -------------------------------------------------------

    def _load_image(self, name: str) -> pygame.Surface:
        path = self.assets_dir / name
        if not path.exists():
            raise FileNotFoundError(f"Could not load image from {path}")
        return pygame.image.load(str(path))

    def _load_font(self, size: int) -> pygame.font.Font:
        try:
            return pygame.font.Font(str(self.assets_dir / "Pixellari.ttf"), size)
        except (OSError, pygame.error):
            log.warning("Failed to load font.")
            return pygame.font.Font(None, size)

    def _load_click(self) -> Optional[pygame.mixer.Sound]:
        path = self.assets_dir / "click.wav"
        if not path.exists():
            raise FileNotFoundError(f"Could not load sound from {path}")
        if not pygame.mixer.get_init():
            try:
                pygame.mixer.init()
            except pygame.error:
                log.warning("Audio is unavailable; clicks will be silent.")
                return None
        return pygame.mixer.Sound(str(path))

    def _load_graphics(self) -> None:
        background = self._load_image("background.png")
        search = self._load_image("search.png")
        exit_image = self._load_image("exit.png")
        exit_hover = self._load_image("exit_hover.png")
        globe = self._load_image("globe.png")
        globe_hover = self._load_image("globe_hover.png")
        back = self._load_image("back.png")
        back_hover = self._load_image("back_hover.png")

        stars = FrameAnimator(STAR_FRAME_SECONDS)
        star_files = [self.assets_dir / f"stars{i}.png" for i in range(1, STAR_FRAME_COUNT + 1)]
        if not stars.load(star_files):
            raise FileNotFoundError("Could not load star animation frames.")
        stars.set_position(STAR_AREA_X, STAR_AREA_Y)
        stars.set_size(STAR_AREA_WIDTH, STAR_AREA_HEIGHT)

        self._gfx = _Graphics(
            background=background,
            search=search,
            exit=exit_image,
            exit_hover=exit_hover,
            globe=globe,
            globe_hover=globe_hover,
            back=back,
            back_hover=back_hover,
            stars=stars,
            city_font=self._load_font(CITY_CHAR_SIZE),
            result_font=self._load_font(RESULT_CHAR_SIZE),
            info_font=self._load_font(INFO_CHAR_SIZE),
            click=None,
        )
        self.search.measure = self._gfx.result_font.size
        self._refresh_moon(fatal=True)
        self._gfx.click = self._load_click()

    def _refresh_moon(self, fatal: bool) -> None:
        path = self.base_dir / phase_image(self.moon_info.phase)
        try:
            image = pygame.image.load(str(path))
        except (pygame.error, OSError):
            log.error("Could not load moon image from %s", path)
            if fatal:
                raise
            return
        self._gfx.moon = image

    def _play_click(self) -> None:
        if self._gfx is not None and self._gfx.click is not None:
            self._gfx.click.play()

    # --- event handling -------------------------------------------------

    def _type(self, code: int) -> None:
        if self.search.type_char(code):
            self._highlight_y = HIGHLIGHT_TOP
            self._city_results = len(self.search.results)

    def _click(self, pos: tuple[int, int]) -> None:
        gfx = self._gfx
        self._dragging = False
        if pygame.Rect(EXIT_BUTTON_POS, gfx.exit.get_size()).collidepoint(pos):
            self._play_click()
            self.running = False

        if self.state is AppState.MAIN_VIEW:
            if pygame.Rect(LOCATION_BUTTONS_POS, gfx.globe.get_size()).collidepoint(pos):
                self._play_click()
                self.state = AppState.SEARCH_VIEW
                self.search.clear()
                self._city_results = 0
        elif pygame.Rect(LOCATION_BUTTONS_POS, gfx.back.get_size()).collidepoint(pos):
            self._play_click()
            self.state = AppState.MAIN_VIEW
        else:
            city = self.search.result_at(*pos)
            if city is not None:
                self._play_click()
                self.select_city(city)

    def _drag(self, pos: tuple[int, int]) -> None:
        if self._window is None:
            return
        wx, wy = self._window.position
        self._window.position = (
            wx + pos[0] - self._drag_origin[0],
            wy + pos[1] - self._drag_origin[1],
        )

    def _handle(self, event: pygame.event.Event) -> None:
        if self.state is AppState.SEARCH_VIEW:
            if event.type == pygame.TEXTINPUT:
                for char in event.text:
                    self._type(ord(char))
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_BACKSPACE:
                self._type(BACKSPACE)

        if event.type == pygame.QUIT:
            self.running = False
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            x, y = event.pos
            if 0 <= x < FRAME_WIDTH and 0 <= y < DRAG_AREA_HEIGHT:
                self._dragging = True
                self._drag_origin = event.pos
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self._click(event.pos)
        elif event.type == pygame.MOUSEMOTION and self._dragging:
            self._drag(event.pos)

    # --- drawing --------------------------------------------------------

    def _draw_main(self, screen: pygame.Surface, hover_exit: bool, hover_globe: bool) -> None:
        gfx = self._gfx
        gfx.stars.draw(screen)
        screen.blit(gfx.background, (0, 0))
        city = gfx.city_font.render(self.location.name, True, YELLOW)
        screen.blit(city, (round(CITY_TEXT_CENTER_X - city.get_width() / 2), round(CITY_TEXT_Y)))
        screen.blit(gfx.exit_hover if hover_exit else gfx.exit, EXIT_BUTTON_POS)
        screen.blit(gfx.globe_hover if hover_globe else gfx.globe, LOCATION_BUTTONS_POS)
        if gfx.moon is not None:
            center = (
                round(STAR_AREA_X + STAR_AREA_WIDTH / 2),
                round(STAR_AREA_Y + STAR_AREA_HEIGHT / 2),
            )
            screen.blit(gfx.moon, gfx.moon.get_rect(center=center))
        line_height = gfx.info_font.get_linesize()
        for index, line in enumerate(info_text(self.moon_info).split("\n")):
            rendered = gfx.info_font.render(line, True, YELLOW)
            screen.blit(rendered, (INFO_PANEL_X + 44, INFO_PANEL_Y + 9 + index * line_height))

    def _draw_search(self, screen: pygame.Surface, hover_exit: bool, hover_back: bool) -> None:
        gfx = self._gfx
        screen.blit(gfx.search, (0, 0))
        screen.blit(gfx.exit_hover if hover_exit else gfx.exit, EXIT_BUTTON_POS)
        screen.blit(gfx.back_hover if hover_back else gfx.back, LOCATION_BUTTONS_POS)
        if self._city_results:
            rect = pygame.Rect(HIGHLIGHT_X, round(self._highlight_y), *map(round, HIGHLIGHT_SIZE))
            pygame.draw.rect(screen, HIGHLIGHT_COLOR, rect)
        screen.blit(gfx.result_font.render(self.search.query, True, YELLOW), (SEARCH_BAR_X, SEARCH_BAR_Y))
        for index, city in enumerate(self.search.results):
            rendered = gfx.result_font.render(result_label(city), True, YELLOW)
            screen.blit(rendered, (SEARCH_BAR_X, round(RESULT_START_Y + index * RESULT_LINE_SPACING)))

    def _frame(self, screen: pygame.Surface) -> None:
        gfx = self._gfx
        mouse = pygame.mouse.get_pos()
        row = highlight_row(mouse[1], self._city_results)
        if row is not None:
            self._highlight_y = row

        hover_globe = pygame.Rect(LOCATION_BUTTONS_POS, gfx.globe.get_size()).collidepoint(mouse)
        hover_back = pygame.Rect(LOCATION_BUTTONS_POS, gfx.back.get_size()).collidepoint(mouse)
        hover_exit = pygame.Rect(EXIT_BUTTON_POS, gfx.exit.get_size()).collidepoint(mouse)

        for event in pygame.event.get():
            self._handle(event)

        gfx.stars.update()
        screen.fill(BLACK)
        if self.state is AppState.MAIN_VIEW:
            self._draw_main(screen, hover_exit, hover_globe)
        else:
            self._draw_search(screen, hover_exit, hover_back)
        pygame.display.flip()

    def run(self) -> None:
        """Open the window and process events until it is closed."""
        os.environ.setdefault("SDL_VIDEO_CENTERED", "1")
        pygame.init()
        try:
            screen = pygame.display.set_mode((FRAME_WIDTH, FRAME_HEIGHT), pygame.NOFRAME)
            pygame.display.set_caption("Tsuki")
            if _SdlWindow is not None:
                try:
                    self._window = _SdlWindow.from_display_module()
                except (pygame.error, AttributeError):
                    self._window = None
            self._load_graphics()
            self.running = True
            clock = pygame.time.Clock()
            while self.running:
                self._frame(screen)
                clock.tick(FRAME_RATE)
        finally:
            self._gfx = None
            self._window = None
            pygame.quit()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the moon viewer; returns the process exit status."""
    parser = argparse.ArgumentParser(prog="tsukimoon", description="Show the Moon's phase and rise/set times.")
    parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="directory holding assets/ and location.txt (default: current directory)",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    try:
        TsukiApp(args.directory).run()
    except (OSError, ValueError, pygame.error) as exc:
        log.error("%s", exc)
        return 1
    return 0