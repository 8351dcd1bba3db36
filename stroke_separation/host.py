# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

import logging

from . import StrokeSeparator
from .errors import UserCancelled

logger = logging.getLogger(__name__)

class AssetSink:
    """
    Where separated meshes end up. persist() returns a handle that
    delete() accepts, so that created assets can be rolled back.
    """
    
    def persist(self, mesh, suggested_path):
        raise NotImplementedError
    
    def delete(self, handle):
        raise NotImplementedError

class MemoryAssetSink(AssetSink):
    def __init__(self):
        self.assets = {}
    
    def persist(self, mesh, suggested_path):
        path = suggested_path
        suffix = 1
        while path in self.assets:
            path = f"{suggested_path} {suffix}"
            suffix += 1
        self.assets[path] = mesh
        return path
    
    def delete(self, handle):
        self.assets.pop(handle, None)

class UndoHistory:
    """
    Records what one operation created and destroyed, so that the whole
    operation (not individual strokes) can be reverted
    """
    
    def __init__(self, sink=None):
        self.sink = sink
        self.name = ""
        self.created = []
        self.destroyed = []
    
    def begin_group(self, name):
        self.name = name
        self.created = []
        self.destroyed = []
    
    def register_created(self, handle):
        self.created.append(handle)
    
    def register_destroyed(self, obj):
        self.destroyed.append(obj)
    
    def revert(self):
        logger.info("Reverting '%s' (%d created)", self.name, len(self.created))
        if self.sink:
            for handle in reversed(self.created):
                self.sink.delete(handle)
        self.created = []
        self.destroyed = []

def submesh_path(name, index, extension=""):
    return f"{name}_submeshes/{name}_submesh[{index}]{extension}"

def stage_progress(report, stage, stage_count):
    "Maps the progress of one mesh into the progress of the whole selection"
    if report is None: return None
    return (lambda fraction: report((stage + fraction) / stage_count))

def run_operation(meshes, separate, sink, name, report=None, history=None, extension=""):
    history = history or UndoHistory(sink)
    if history.sink is None: history.sink = sink
    history.begin_group(name)
    
    meshes = list(meshes)
    
    try:
        # Everything is computed before anything is persisted, so that a
        # cancelled operation leaves nothing behind
        results = []
        for stage, mesh in enumerate(meshes):
            results.append((mesh, separate(mesh, stage_progress(report, stage, len(meshes)))))
        
        handles = []
        for mesh, parts in results:
            mesh_handles = []
            for part in parts:
                handle = sink.persist(part, submesh_path(mesh.name, part.index, extension))
                history.register_created(handle)
                mesh_handles.append(handle)
            history.register_destroyed(mesh)
            handles.append(mesh_handles)
    except UserCancelled:
        logger.info("'%s' cancelled", name)
        history.revert()
        raise
    except Exception:
        logger.error("'%s' failed, reverting", name)
        history.revert()
        raise
    
    return handles

def separate_meshes_to_strokes(meshes, sink, key_channel="uv2", report=None, history=None, **options):
    """
    Separates each mesh into strokes by the stroke ids in key_channel and
    persists the parts. Returns a list of asset handles for each mesh.
    All-or-nothing: on cancellation or failure, created assets are
    reverted and the exception propagates.
    """
    
    def separate(mesh, stage_report):
        separator = StrokeSeparator(report=stage_report, **options)
        separator.set_mesh(mesh)
        return separator.separate(key_channel)
    
    return run_operation(meshes, separate, sink, "Separate mesh to strokes",
        report=report, history=history, extension=options.get("extension", ""))

def separate_meshes_by_color(meshes, sink, report=None, history=None, **options):
    "Like separate_meshes_to_strokes, but grouping triangles by their average color"
    
    def separate(mesh, stage_report):
        separator = StrokeSeparator(report=stage_report, **options)
        separator.set_mesh(mesh)
        return separator.separate_by_color()
    
    return run_operation(meshes, separate, sink, "Separate sketch by color",
        report=report, history=history, extension=options.get("extension", ""))
