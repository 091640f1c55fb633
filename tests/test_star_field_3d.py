import math

import pytest

pygame = pytest.importorskip("pygame")
try:
    import star_field_3d
except Exception as e:  # no usable OpenGL library on this machine
    pytest.skip(f"star_field_3d unavailable: {e}", allow_module_level=True)

from star_catalog import records_to_frame
from star_field_3d import StarField3D, create_state

WIDTH, HEIGHT = 800, 600


class StubRenderer:
    def __init__(self):
        self.viewports = []

    def set_viewport(self, width, height):
        self.viewports.append((width, height))


@pytest.fixture
def app(monkeypatch):
    app = object.__new__(StarField3D)
    app.display = (WIDTH, HEIGHT)
    app.state = create_state(WIDTH, HEIGHT)
    app.renderer = StubRenderer()
    app.running = False
    app.captions = []
    app.set_mode_calls = []
    monkeypatch.setattr(pygame.display, "set_caption", app.captions.append)
    monkeypatch.setattr(pygame.display, "set_mode", lambda *a, **kw: app.set_mode_calls.append((a, kw)))
    return app


def _feed(monkeypatch, *events):
    monkeypatch.setattr(pygame.event, "get", lambda: list(events))


# --- Resize ---
def test_resize_updates_camera_and_viewport(app):
    app.resize(1000, 500)
    camera = app.state.camera
    assert camera.aspect == pytest.approx(2.0)
    assert camera.projection_matrix[0, 0] == pytest.approx(1 / math.tan(math.radians(40.0)) / 2.0)
    assert app.renderer.viewports == [(1000, 500)]
    assert app.display == (1000, 500)
    assert app.set_mode_calls == []


def test_resize_ignores_empty_size(app):
    app.resize(0, 0)
    assert app.state.camera.aspect == pytest.approx(WIDTH / HEIGHT)
    assert app.renderer.viewports == []
    assert app.display == (WIDTH, HEIGHT)


def test_videoresize_event_resizes(app, monkeypatch):
    _feed(monkeypatch, pygame.event.Event(pygame.VIDEORESIZE, size=(640, 640), w=640, h=640))
    assert app.handle_input()
    assert app.state.camera.aspect == pytest.approx(1.0)


# --- Event mapping ---
def test_quit_stops_the_loop(app, monkeypatch):
    _feed(monkeypatch, pygame.event.Event(pygame.QUIT))
    assert app.handle_input() is False


def test_button_up_ends_drag_then_picks(app, monkeypatch):
    app.state.builder.build_page(records_to_frame([{'GaiaID': 'Gaia DR3 4472832130942575872', 'ra': 0.0, 'dec': 0.0}]))
    _feed(monkeypatch,
          pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(WIDTH // 2, HEIGHT // 2)),
          pygame.event.Event(pygame.MOUSEBUTTONUP, button=1, pos=(WIDTH // 2, HEIGHT // 2)))
    assert app.handle_input()
    assert app.state.controller.state == 'idle'
    assert app.captions[-1].endswith("Selected: Gaia DR3 4472832130942575872")


def test_button_up_on_empty_sky_leaves_caption(app, monkeypatch):
    _feed(monkeypatch, pygame.event.Event(pygame.MOUSEBUTTONUP, button=1, pos=(0, 0)))
    assert app.handle_input()
    assert app.captions == []


def test_drag_events_rotate_camera(app, monkeypatch):
    yaw = app.state.controller.orientation.yaw
    _feed(monkeypatch,
          pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(0, 0)),
          pygame.event.Event(pygame.MOUSEMOTION, pos=(100, 0), rel=(100, 0), buttons=(1, 0, 0)))
    app.handle_input()
    assert app.state.controller.orientation.yaw - yaw == pytest.approx(100 * 0.001 * (80 / 75))


def test_right_button_does_not_drag(app, monkeypatch):
    _feed(monkeypatch, pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=3, pos=(0, 0)))
    app.handle_input()
    assert app.state.controller.state == 'idle'


@pytest.mark.parametrize("notches,expected", [(1, 79.0), (-1, 80.0), (3, 77.0)])
def test_wheel_notches_zoom(app, monkeypatch, notches, expected):
    _feed(monkeypatch, pygame.event.Event(pygame.MOUSEWHEEL, x=0, y=notches))
    app.handle_input()
    assert app.state.controller.orientation.fov == pytest.approx(expected)
    assert app.state.camera.fov == pytest.approx(expected)


# --- Display mode ---
def test_set_mode_requests_vsync(app):
    app._set_mode(WIDTH, HEIGHT)
    assert app.set_mode_calls[0][1] == {'vsync': 1}


def test_set_mode_falls_back_without_vsync(app, monkeypatch, caplog):
    calls = []

    def fake_set_mode(size, flags=0, **kw):
        calls.append(kw)
        if kw.get('vsync'):
            raise pygame.error("Unable to set swap interval")

    monkeypatch.setattr(pygame.display, "set_mode", fake_set_mode)
    app._set_mode(WIDTH, HEIGHT)
    assert calls == [{'vsync': 1}, {}]
    assert "vsync unavailable" in caplog.text
