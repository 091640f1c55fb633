import logging
import math
from dataclasses import dataclass

from scene_graph import Raycaster, quaternion_from_euler_yxz

# --- Camera Control Constants ---
BASE_ROTATION_SPEED = 0.001
REFERENCE_FOV = 75.0
ZOOM_SPEED = 0.01
MIN_FOV, MAX_FOV = 1.0, 80.0
MAX_PITCH = math.pi / 2


@dataclass
class CameraOrientation:
    yaw: float = 3 / 2 * math.pi  # looking down +X
    pitch: float = 0.0
    fov: float = MAX_FOV


@dataclass
class DragState:
    is_dragging: bool = False
    last_x: float = 0.0
    last_y: float = 0.0


class CameraController:
    """
    Drag-to-orbit and wheel-to-zoom for a camera sitting at the centre of the sky.
    Orientation is rebuilt from the accumulated yaw/pitch on every move, there is no inertia.
    """
    def __init__(self, camera, orientation=None, base_speed=BASE_ROTATION_SPEED, zoom_speed=ZOOM_SPEED):
        self.camera = camera
        self.orientation = orientation or CameraOrientation()
        self.drag = DragState()
        self.base_speed, self.zoom_speed = base_speed, zoom_speed
        self.camera.fov = self.orientation.fov
        self.camera.update_projection_matrix()
        self.apply_orientation()

    @property
    def state(self):
        return 'dragging' if self.drag.is_dragging else 'idle'

    def rotation_speed(self):
        # zoomed in means slower apparent rotation
        return self.base_speed * (self.orientation.fov / REFERENCE_FOV)

    def apply_orientation(self):
        self.camera.quaternion = quaternion_from_euler_yxz(self.orientation.pitch, self.orientation.yaw)

    def pointer_down(self, x, y):
        self.drag = DragState(True, x, y)

    def pointer_move(self, x, y):
        if not self.drag.is_dragging: return
        dx, dy = x - self.drag.last_x, y - self.drag.last_y
        speed = self.rotation_speed()
        o = self.orientation
        o.yaw += dx * speed
        o.pitch = max(min(o.pitch + dy * speed, MAX_PITCH), -MAX_PITCH)
        self.apply_orientation()
        self.drag.last_x, self.drag.last_y = x, y

    def pointer_up(self):
        self.drag = DragState()

    def wheel(self, delta_y):
        o = self.orientation
        o.fov = max(min(o.fov + delta_y * self.zoom_speed, MAX_FOV), MIN_FOV)
        self.camera.fov = o.fov
        self.camera.update_projection_matrix()


class PickingHandler:
    def __init__(self, camera, registry):
        self.camera = camera
        self.registry = registry
        self.raycaster = Raycaster()

    def pick(self, x, y, width, height):
        """Returns the catalog id of the nearest star under the cursor, or None."""
        ndc = ((x / width) * 2 - 1, -(y / height) * 2 + 1)
        self.raycaster.set_from_camera(ndc, self.camera)
        intersects = self.raycaster.intersect_objects(self.registry.hit_meshes())
        if not intersects: return None
        entry = self.registry.find_by_mesh(intersects[0].object)
        if entry is None: return None
        logging.info(f"Star Name: {entry.id}")
        return entry.id
