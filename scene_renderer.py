import numpy as np
from OpenGL.GL import *
from OpenGL.GLU import *


def _gl_matrix(m):
    # OpenGL wants column-major
    return np.ascontiguousarray(np.asarray(m).T, dtype=np.float32)


class SceneRenderer:
    def __init__(self):
        self.textures = {}
        self.quadric = gluNewQuadric()
        gluQuadricTexture(self.quadric, GL_TRUE)
        self.init_gl()

    def init_gl(self):
        glEnable(GL_DEPTH_TEST); glEnable(GL_BLEND)
        glBlendFunc(GL_SRC_ALPHA, GL_ONE_MINUS_SRC_ALPHA)
        glClearColor(0.0, 0.0, 0.0, 1.0)

    def set_viewport(self, width, height):
        glViewport(0, 0, width, height)

    def _texture_for(self, material):
        key = id(material)
        if key not in self.textures:
            image = np.ascontiguousarray(np.flipud(material.texture))
            tex_id = glGenTextures(1)
            glBindTexture(GL_TEXTURE_2D, tex_id)
            glTexParameteri(GL_TEXTURE_2D, GL_TEXTURE_MIN_FILTER, GL_LINEAR_MIPMAP_LINEAR)
            glTexParameteri(GL_TEXTURE_2D, GL_TEXTURE_MAG_FILTER, GL_LINEAR)
            glPixelStorei(GL_UNPACK_ALIGNMENT, 1)
            gluBuild2DMipmaps(GL_TEXTURE_2D, GL_RGB, image.shape[1], image.shape[0], GL_RGB, GL_UNSIGNED_BYTE, image)
            self.textures[key] = tex_id
        return self.textures[key]

    def draw_skybox(self, skybox):
        material = skybox.material
        glDepthMask(GL_FALSE)
        if material.texture is not None:
            glEnable(GL_TEXTURE_2D); glBindTexture(GL_TEXTURE_2D, self._texture_for(material))
        glColor4f(*material.color, material.opacity)
        gluQuadricOrientation(self.quadric, GLU_INSIDE if material.back_side else GLU_OUTSIDE)
        glPushMatrix(); glTranslatef(*skybox.position)
        glRotatef(-90.0, 1.0, 0.0, 0.0)  # GLU sphere poles lie on z, the sky's lie on y
        gluSphere(self.quadric, skybox.geometry.radius, skybox.geometry.width_segments, skybox.geometry.height_segments)
        glPopMatrix()
        gluQuadricOrientation(self.quadric, GLU_OUTSIDE)
        glDisable(GL_TEXTURE_2D); glDepthMask(GL_TRUE)

    def draw_mesh(self, mesh):
        geometry, material = mesh.geometry, mesh.material
        glColor4f(*material.color, material.opacity)
        glPushMatrix(); glTranslatef(*mesh.position)
        gluSphere(self.quadric, geometry.radius, geometry.width_segments, geometry.height_segments)
        glPopMatrix()

    def render(self, scene, camera):
        glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)
        glMatrixMode(GL_PROJECTION); glLoadMatrixf(_gl_matrix(camera.projection_matrix))
        glMatrixMode(GL_MODELVIEW); glLoadMatrixf(_gl_matrix(camera.view_matrix()))
        if scene.skybox is not None:
            self.draw_skybox(scene.skybox)
        for mesh in scene.snapshot():
            if mesh.material.visible:
                self.draw_mesh(mesh)
