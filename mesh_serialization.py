# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

import os
import logging

import numpy as np
import trimesh

from stroke_separation import Mesh
from stroke_separation.host import AssetSink

logger = logging.getLogger(__name__)

def colors_to_bytes(colors):
    return np.clip(np.round(colors * 255.0), 0, 255).astype(np.uint8)

def to_trimesh(mesh):
    """
    Converts a Mesh to trimesh.Trimesh (without merging or reordering
    anything). Vertex colors take precedence over uv, since a Trimesh
    holds only one kind of visuals.
    """
    visual = None
    if mesh.colors is not None:
        visual = trimesh.visual.ColorVisuals(vertex_colors=colors_to_bytes(mesh.colors))
    elif mesh.uv is not None:
        visual = trimesh.visual.TextureVisuals(uv=mesh.uv)
    
    vertex_attributes = {key: data[:, 0] for key, data in mesh.channels.items() if len(data)}
    
    return trimesh.Trimesh(
        vertices=mesh.vertices,
        faces=mesh.faces,
        vertex_normals=mesh.normals,
        visual=visual,
        vertex_attributes=vertex_attributes,
        process=False,
    )

def from_trimesh(tmesh, key_attribute=None, name=""):
    """
    key_attribute: name of the vertex attribute holding stroke ids; it
        is stored as the "uv2" channel of the result
    """
    colors = None
    uv = None
    visual = tmesh.visual
    if visual.kind == "vertex":
        colors = np.asarray(visual.vertex_colors, dtype=np.float64) / 255.0
    elif (visual.kind == "texture") and (getattr(visual, "uv", None) is not None):
        uv = visual.uv
    
    channels = {}
    if key_attribute:
        data = tmesh.vertex_attributes.get(key_attribute)
        if data is None:
            logger.warning("Mesh (%s) has no vertex attribute '%s'", name, key_attribute)
        else:
            channels["uv2"] = data
    
    return Mesh(
        np.asarray(tmesh.vertices),
        np.asarray(tmesh.faces),
        normals=np.asarray(tmesh.vertex_normals),
        uv=uv,
        colors=colors,
        channels=channels,
        name=name,
    )

def load_mesh(file_path, key_attribute=None, name=None):
    if name is None: name = os.path.splitext(os.path.basename(file_path))[0]
    # Don't let trimesh merge vertices: that would mix up stroke vertices
    tmesh = trimesh.load(file_path, process=False, force="mesh")
    logger.debug("Loaded %s: %d verts, %d tris", file_path, len(tmesh.vertices), len(tmesh.faces))
    return from_trimesh(tmesh, key_attribute, name)

def export_mesh(file_path, mesh, **kwargs):
    file_type = kwargs.get("file_type") or os.path.splitext(file_path)[1][1:] or "ply"
    folder = os.path.dirname(file_path)
    if folder: os.makedirs(folder, exist_ok=True)
    to_trimesh(mesh).export(file_obj=file_path, file_type=file_type)
    return file_path

def export_meshes(folder, meshes, **kwargs):
    file_type = kwargs.get("file_type", "ply")
    
    paths = []
    for mesh in meshes:
        file_path = os.path.join(folder, f"{mesh.name}.{file_type}")
        paths.append(export_mesh(file_path, mesh, file_type=file_type))
        logger.info("Wrote %s", file_path)
    
    return paths

class FolderAssetSink(AssetSink):
    def __init__(self, root, file_type="ply"):
        self.root = root
        self.file_type = file_type
    
    def persist(self, mesh, suggested_path):
        file_path = os.path.join(self.root, f"{suggested_path}.{self.file_type}")
        return export_mesh(file_path, mesh, file_type=self.file_type)
    
    def delete(self, handle):
        if os.path.exists(handle): os.remove(handle)
        
        # Remove the <name>_submeshes folders once they are empty, but never the root
        root = os.path.abspath(self.root)
        folder = os.path.dirname(os.path.abspath(handle))
        while (folder != root) and folder.startswith(root + os.sep):
            if not os.path.isdir(folder) or os.listdir(folder): break
            os.rmdir(folder)
            folder = os.path.dirname(folder)
