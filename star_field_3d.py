import logging
import threading
from dataclasses import dataclass

import pygame
from pygame.locals import *

from camera_controls import CameraController, PickingHandler
from scene_graph import PerspectiveCamera, Scene
from scene_renderer import SceneRenderer
from star_catalog import MAG_CUTOFF, PER_PAGE, TABLE_NAME, StarCatalogClient
from star_scene import TEXTURE_PATH, SceneBuilder, StarRegistry

# --- Display Constants ---
SCREEN_WIDTH, SCREEN_HEIGHT = 1280, 720
WINDOW_TITLE = "3D Star Field | Drag to look around, scroll to zoom, click a star"
WHEEL_PIXELS_PER_NOTCH = 100
CAMERA_NEAR, CAMERA_FAR = 0.1, 1000.0

# --- Logging Setup ---
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s', handlers=[logging.FileHandler('star_field_3d.log')])


@dataclass
class StarFieldState:
    scene: Scene
    camera: PerspectiveCamera
    registry: StarRegistry
    controller: CameraController
    picker: PickingHandler
    catalog: StarCatalogClient
    builder: SceneBuilder


def create_state(width, height, catalog=None):
    scene, registry = Scene(), StarRegistry()
    camera = PerspectiveCamera(80, width / height, CAMERA_NEAR, CAMERA_FAR)
    return StarFieldState(scene=scene, camera=camera, registry=registry,
                          controller=CameraController(camera), picker=PickingHandler(camera, registry),
                          catalog=catalog or StarCatalogClient(), builder=SceneBuilder(scene, registry))


# --- Main Application Class ---
class StarField3D:
    def __init__(self, table=TABLE_NAME, per_page=PER_PAGE, mag_cutoff=MAG_CUTOFF, texture_path=TEXTURE_PATH):
        pygame.init()
        self.display = (SCREEN_WIDTH, SCREEN_HEIGHT)
        self._set_mode(*self.display)
        pygame.display.set_caption(WINDOW_TITLE)

        self.state = create_state(*self.display)
        self.renderer = SceneRenderer(); self.renderer.set_viewport(*self.display)
        self.state.builder.add_skybox(texture_path)
        self.state.builder.add_reference_points()

        self.table, self.per_page, self.mag_cutoff = table, per_page, mag_cutoff
        self.loader_thread = None
        self.running = False

    def _set_mode(self, width, height):
        flags = DOUBLEBUF | OPENGL | RESIZABLE
        try:
            pygame.display.set_mode((width, height), flags, vsync=1)
        except pygame.error as e:
            logging.warning(f"vsync unavailable ({e}), falling back to an unsynced display.")
            pygame.display.set_mode((width, height), flags)

    def _load_stars(self):
        try:
            pagination = self.state.catalog.load_all(self.table, self.per_page, self.mag_cutoff, on_page=self.state.builder.build_page)
            logging.info(f"Star loading finished after page {pagination.current_page - 1} of {pagination.total_pages}, {len(self.state.registry)} stars in scene.")
        except Exception as e:
            logging.error(f"Star loader stopped unexpectedly: {e}", exc_info=True)

    def start_loading(self):
        self.loader_thread = threading.Thread(target=self._load_stars, name="star-loader", daemon=True)
        self.loader_thread.start()

    def resize(self, width, height):
        if width <= 0 or height <= 0: return
        self.display = (width, height)
        camera = self.state.camera
        camera.aspect = width / height
        camera.update_projection_matrix()
        # SDL2 resizes a RESIZABLE window itself, set_mode again would drop the GL context and its textures
        self.renderer.set_viewport(width, height)

    def select_star_at_pos(self, pos):
        star_id = self.state.picker.pick(pos[0], pos[1], *self.display)
        if star_id is not None:
            pygame.display.set_caption(f"{WINDOW_TITLE} | Selected: {star_id}")
        return star_id

    def handle_input(self):
        controller = self.state.controller
        for event in pygame.event.get():
            if event.type == pygame.QUIT: return False
            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                controller.pointer_down(*event.pos)
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                controller.pointer_up()
                self.select_star_at_pos(event.pos)
            elif event.type == pygame.MOUSEMOTION:
                controller.pointer_move(*event.pos)
            elif event.type == pygame.MOUSEWHEEL:
                # pygame reports notches with up positive, the zoom works in browser-style pixels
                controller.wheel(-event.y * WHEEL_PIXELS_PER_NOTCH)
            elif event.type == pygame.VIDEORESIZE:
                self.resize(*event.size)
        return True

    def stop(self):
        self.running = False

    def run(self):
        self.start_loading()
        self.running = True
        while self.running:
            if not self.handle_input(): self.stop(); break
            self.renderer.render(self.state.scene, self.state.camera)
            pygame.display.flip()
        pygame.quit()


def main():
    app = StarField3D()
    app.run()


if __name__ == "__main__":
    main()
