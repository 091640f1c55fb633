import logging
import threading
from dataclasses import dataclass

import numpy as np
from PIL import Image

from scene_graph import Mesh, MeshMaterial, SphereGeometry
from star_catalog import SKYBOX_RADIUS, STAR_RADIUS, radec_to_position

# --- Scene Constants ---
TEXTURE_PATH = "assets/milky_way_texture.jpg"
STAR_COLOR = (1.0, 0.0, 1.0)
MARKER_RADIUS, HIT_RADIUS = 1.0, 6.0
REFERENCE_POINTS = [
    ((100.0, 0.0, 0.0), (1.0, 0.0, 0.0)),  # X
    ((0.0, 100.0, 0.0), (0.0, 1.0, 0.0)),  # Y
    ((0.0, 0.0, 100.0), (0.0, 0.0, 1.0)),  # Z
]


@dataclass(eq=False)
class StarEntry:
    id: str
    marker: Mesh
    hit_mesh: Mesh

    @classmethod
    def create(cls, star_id, position, marker_geometry, marker_material, hit_geometry, hit_material):
        # both meshes share one frozen array so they can never drift apart
        shared = np.array(position, dtype=np.float64)
        shared.setflags(write=False)
        return cls(star_id, Mesh(marker_geometry, marker_material, shared), Mesh(hit_geometry, hit_material, shared))


class StarRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._entries = []

    def append(self, entries):
        with self._lock:
            self._entries.extend(entries)

    @property
    def entries(self):
        with self._lock:
            return list(self._entries)

    def hit_meshes(self):
        return [entry.hit_mesh for entry in self.entries]

    def find_by_mesh(self, mesh):
        for entry in self.entries:
            if entry.hit_mesh is mesh:
                return entry
        return None

    def __len__(self):
        with self._lock:
            return len(self._entries)


def load_texture(path):
    """Decodes an image file into an RGB uint8 array."""
    with Image.open(path) as img:
        return np.asarray(img.convert('RGB'), dtype=np.uint8)


# --- Scene Construction ---
class SceneBuilder:
    def __init__(self, scene, registry, radius=STAR_RADIUS):
        self.scene = scene
        self.registry = registry
        self.radius = radius

    def build_page(self, frame):
        """Creates a visible marker and an invisible hit-test sphere for every star in the page."""
        if frame.empty: return []
        star_geometry = SphereGeometry(MARKER_RADIUS, 8, 8)
        bounding_geometry = SphereGeometry(HIT_RADIUS, 8, 8)
        star_material = MeshMaterial(color=STAR_COLOR)
        bounding_material = MeshMaterial(color=(0.0, 0.0, 0.0), opacity=0.0, transparent=True)

        xs, ys, zs = radec_to_position(frame['ra'].to_numpy(), frame['dec'].to_numpy(), self.radius)
        entries = []
        for star_id, x, y, z in zip(frame['GaiaID'], xs, ys, zs):
            entry = StarEntry.create(star_id, (x, y, z), star_geometry, star_material, bounding_geometry, bounding_material)
            self.scene.add(entry.marker, entry.hit_mesh)
            entries.append(entry)
        self.registry.append(entries)
        return entries

    def add_reference_points(self):
        geometry = SphereGeometry(1.0, 8, 8)
        points = [Mesh(geometry, MeshMaterial(color=color), position) for position, color in REFERENCE_POINTS]
        self.scene.add(*points)
        return points

    def add_skybox(self, texture_path=TEXTURE_PATH):
        material = MeshMaterial(color=(0.0, 0.0, 0.0), back_side=True)
        try:
            material.texture = load_texture(texture_path); material.color = (1.0, 1.0, 1.0)
            logging.info(f"Loaded skybox texture {texture_path} {material.texture.shape[1]}x{material.texture.shape[0]}.")
        except (OSError, ValueError) as e:
            logging.warning(f"Could not load skybox texture {texture_path}: {e}")
        self.scene.skybox = Mesh(SphereGeometry(SKYBOX_RADIUS, 64, 64), material)
        return self.scene.skybox
