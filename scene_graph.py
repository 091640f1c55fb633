import math
import threading
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np


# --- Geometry & Materials ---
@dataclass(frozen=True)
class SphereGeometry:
    radius: float = 1.0
    width_segments: int = 8
    height_segments: int = 8


@dataclass
class MeshMaterial:
    color: tuple = (1.0, 1.0, 1.0)
    opacity: float = 1.0
    transparent: bool = False
    texture: Optional[np.ndarray] = None  # RGB uint8, rows top to bottom
    back_side: bool = False

    @property
    def visible(self):
        return self.opacity > 0.0


class Mesh:
    def __init__(self, geometry, material, position=(0.0, 0.0, 0.0)):
        self.geometry = geometry
        self.material = material
        self.position = np.asarray(position, dtype=np.float64)

    def __repr__(self):
        return f"Mesh(r={self.geometry.radius}, pos={self.position.tolist()})"


class Scene:
    """Flat, thread-safe mesh container. The skybox is kept apart so it is always drawn first."""
    def __init__(self):
        self._lock = threading.Lock()
        self._meshes = []
        self.skybox = None

    def add(self, *meshes):
        with self._lock:
            self._meshes.extend(meshes)

    def snapshot(self) -> List[Mesh]:
        with self._lock:
            return list(self._meshes)

    def __len__(self):
        with self._lock:
            return len(self._meshes)


# --- Camera ---
def quaternion_from_euler_yxz(pitch, yaw, roll=0.0):
    """Quaternion (x, y, z, w) for an intrinsic Y-X-Z rotation: yaw about Y, then pitch about X, then roll about Z."""
    c1, s1 = math.cos(pitch / 2), math.sin(pitch / 2)
    c2, s2 = math.cos(yaw / 2), math.sin(yaw / 2)
    c3, s3 = math.cos(roll / 2), math.sin(roll / 2)
    return np.array([
        s1 * c2 * c3 + c1 * s2 * s3,
        c1 * s2 * c3 - s1 * c2 * s3,
        c1 * c2 * s3 - s1 * s2 * c3,
        c1 * c2 * c3 + s1 * s2 * s3,
    ])


def quaternion_to_matrix(q):
    x, y, z, w = q
    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
        [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
        [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
    ])


class PerspectiveCamera:
    def __init__(self, fov=50.0, aspect=1.0, near=0.1, far=2000.0):
        self.fov, self.aspect, self.near, self.far = fov, aspect, near, far
        self.position = np.zeros(3)
        self.quaternion = np.array([0.0, 0.0, 0.0, 1.0])
        self.projection_matrix = np.identity(4)
        self.update_projection_matrix()

    def update_projection_matrix(self):
        f = 1.0 / math.tan(math.radians(self.fov) / 2)
        n, far = self.near, self.far
        self.projection_matrix = np.array([
            [f / self.aspect, 0.0, 0.0, 0.0],
            [0.0, f, 0.0, 0.0],
            [0.0, 0.0, (far + n) / (n - far), 2 * far * n / (n - far)],
            [0.0, 0.0, -1.0, 0.0],
        ])

    def rotation_matrix(self):
        return quaternion_to_matrix(self.quaternion)

    def view_matrix(self):
        rot = self.rotation_matrix()
        view = np.identity(4)
        view[:3, :3] = rot.T
        view[:3, 3] = -rot.T @ self.position
        return view


# --- Ray Casting ---
@dataclass
class Intersection:
    distance: float
    point: np.ndarray = field(repr=False)
    object: Mesh = None


class Raycaster:
    def __init__(self, near=0.0, far=math.inf):
        self.near, self.far = near, far
        self.origin = np.zeros(3)
        self.direction = np.array([0.0, 0.0, -1.0])

    def set_from_camera(self, ndc, camera):
        half_h = math.tan(math.radians(camera.fov) / 2)
        local_dir = np.array([ndc[0] * half_h * camera.aspect, ndc[1] * half_h, -1.0])
        world_dir = camera.rotation_matrix() @ local_dir
        self.origin = np.array(camera.position, dtype=np.float64)
        self.direction = world_dir / np.linalg.norm(world_dir)

    def intersect_objects(self, meshes) -> List[Intersection]:
        """Ray/sphere test against every mesh, nearest hit first."""
        meshes = list(meshes)
        if not meshes: return []
        centers = np.array([m.position for m in meshes], dtype=np.float64)
        radii = np.array([m.geometry.radius for m in meshes], dtype=np.float64)
        oc = self.origin - centers
        b = oc @ self.direction
        c = np.einsum('ij,ij->i', oc, oc) - radii ** 2
        disc = b * b - c
        hit = disc >= 0
        root = np.sqrt(np.where(hit, disc, 0.0))
        t = -b - root
        # origin inside the sphere: take the exit point
        t = np.where(t < self.near, -b + root, t)
        hit &= (t >= self.near) & (t <= self.far)
        hits = [Intersection(float(t[i]), self.origin + t[i] * self.direction, meshes[i]) for i in np.flatnonzero(hit)]
        hits.sort(key=lambda h: h.distance)
        return hits
