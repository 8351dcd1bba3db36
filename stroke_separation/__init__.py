# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

import logging

import numpy as np

from .utils import *
from .errors import *
from .mesh import Mesh, OutputMesh
from .keys import extract_vertex_keys, extract_triangle_key, triangle_color_keys
from .grouping import Group, discover_groups, check_contiguous, regroup_order
from .jobs import (run_jobs, first_vertex_keys, triangle_count_jobs, vertex_map_jobs,
    triangle_copy_jobs, check_triangle_total, count_triangles, remap_vertices, rewrite_triangles)
from .assembly import assemble_meshes
from .color_partition import ColorKey, group_triangles_by_color, color_meshes

logger = logging.getLogger(__name__)

# Note: the per-group jobs are numpy operations over the whole triangle
# buffer, so the cost is O(groups * triangles) but each step runs in
# native code (which releases the GIL, so thread workers do overlap).

# Note: vertices of one stroke are expected to be stored contiguously
# (this is how stroke meshes are exported). This is checked; pass
# regroup=True to reorder the vertices instead of failing.

def StrokeSeparator(**options):
    progress = 0
    progress_max = 1
    progress_text = ""
    progress_info = ""
    progress_callback = options.get("report")
    progress_polls = 0
    
    epsilon = get_option(options, "epsilon", key_epsilon)
    n_jobs = get_option(options, "n_jobs", -1)
    progress_frequency = max(int(get_option(options, "progress_frequency", 64)), 1)
    regroup = get_option(options, "regroup", False)
    
    mesh = None
    vertex_keys = None
    groups = None
    triangle_counts = None
    triangle_offsets = None
    vertex_map = None
    new_triangles = None
    color_buckets = None
    
    def clear():
        nonlocal mesh, vertex_keys, groups, triangle_counts, triangle_offsets
        nonlocal vertex_map, new_triangles, color_buckets
        mesh = None
        vertex_keys = None
        groups = None
        triangle_counts = None
        triangle_offsets = None
        vertex_map = None
        new_triangles = None
        color_buckets = None
    
    def begin(text, count=1):
        nonlocal progress, progress_max, progress_text, progress_info, progress_polls
        progress = 0
        progress_max = count
        progress_text = text
        progress_info = ""
        progress_polls = 0
        logger.debug("%s (%s)", text, count)
    
    def get_task_name():
        return progress_text
    
    def get_progress_info():
        return progress_info
    
    def set_progress_info(info):
        nonlocal progress_info
        progress_info = info
    
    def advance(count=1):
        nonlocal progress, progress_polls
        progress = progress + count
        progress_polls = progress_polls + count
        if progress_polls >= progress_frequency:
            progress_polls = 0
            poll()
    
    def get_progress():
        return progress
    
    def set_progress(value):
        nonlocal progress
        progress = value
    
    def get_progress_relative():
        return (progress / progress_max if progress_max > 0 else 1.0)
    
    def set_progress_relative(value):
        nonlocal progress
        progress = value * progress_max
    
    def set_progress_callback(callback):
        """
        callback: report(fraction) -> bool; polled every progress_frequency
            steps, returning False cancels the whole operation
        """
        nonlocal progress_callback
        progress_callback = callback
    
    def poll():
        if progress_callback is None: return
        if not progress_callback(get_progress_relative()):
            raise UserCancelled(f"{progress_text}: cancelled")
    
    def set_mesh(source):
        """
        source: Mesh to separate; it is never modified
        """
        
        nonlocal mesh
        source.validate()
        mesh = source
    
    def extract_keys(channel="uv2"):
        nonlocal vertex_keys
        try:
            vertex_keys = extract_vertex_keys(mesh, channel)
        except MissingKeyChannel:
            logger.error("Mesh (%s) has no stroke ids in '%s'. Make sure the sketch "
                "was exported with stroke timestamps", mesh.name, channel)
            raise
        return vertex_keys
    
    def find_strokes():
        nonlocal mesh, vertex_keys, groups
        begin("Stroke Discovery", len(vertex_keys))
        groups = discover_groups(vertex_keys, epsilon)
        
        if not all(group.is_contiguous for group in groups):
            if not regroup: check_contiguous(groups)
            logger.info("Mesh (%s): regrouping vertices of %d strokes", mesh.name, len(groups))
            order = regroup_order(groups)
            mesh = mesh.reordered(order)
            vertex_keys = vertex_keys[order]
            groups = discover_groups(vertex_keys, epsilon)
        
        set_progress(len(vertex_keys))
        return groups
    
    def build_triangles():
        nonlocal triangle_counts, triangle_offsets, vertex_map, new_triangles
        
        group_keys = np.array([group.key for group in groups], dtype=np.float64)
        first_keys = first_vertex_keys(mesh.triangles, vertex_keys)
        
        triangle_counts = np.zeros(len(groups), dtype=np.int64)
        vertex_map = np.zeros(mesh.vertex_count, dtype=np.int64)
        
        # Counting and remapping don't depend on each other
        jobs = triangle_count_jobs(first_keys, group_keys, triangle_counts, epsilon)
        jobs += vertex_map_jobs(vertex_keys, group_keys, vertex_map, epsilon)
        
        begin("Triangle Counts", len(jobs))
        run_jobs(jobs, n_jobs, progress_frequency, advance)
        
        # All counts and the whole vertex map are complete at this point
        check_triangle_total(triangle_counts, len(mesh.triangles))
        triangle_offsets = exclusive_prefix_sum(triangle_counts)
        new_triangles = np.zeros(len(mesh.triangles), dtype=np.int64)
        
        jobs = triangle_copy_jobs(mesh.triangles, vertex_keys, group_keys, vertex_map,
            triangle_counts, triangle_offsets, new_triangles, epsilon)
        
        begin("Triangle Copy", len(jobs))
        run_jobs(jobs, n_jobs, progress_frequency, advance)
        
        return new_triangles
    
    def make_meshes():
        begin("Creating strokes", len(groups))
        return assemble_meshes(mesh, groups, triangle_counts, triangle_offsets, new_triangles, advance=advance)
    
    def separate(channel="uv2"):
        extract_keys(channel)
        find_strokes()
        build_triangles()
        meshes = make_meshes()
        logger.info("Mesh (%s): separated into %d strokes", mesh.name, len(meshes))
        return meshes
    
    def separate_by_color():
        nonlocal color_buckets
        
        begin("Separating sketch", mesh.triangle_count)
        color_buckets = group_triangles_by_color(mesh, advance=(lambda t: advance()))
        
        begin("Creating meshes", len(color_buckets))
        meshes = color_meshes(mesh, color_buckets)
        set_progress(len(meshes))
        
        logger.info("Mesh (%s): separated into %d colors", mesh.name, len(meshes))
        return meshes
    
    separator_type = type("StrokeSeparator", (), {
        "task_name": property(lambda self: get_task_name()),
        "progress": property((lambda self: get_progress()),
                             (lambda self, value: set_progress(value))),
        "progress_relative": property((lambda self: get_progress_relative()),
                                      (lambda self, value: set_progress_relative(value))),
        "progress_info": property((lambda self: get_progress_info()),
                                  (lambda self, value: set_progress_info(value))),
        "clear": staticmethod(clear),
        "set_progress_callback": staticmethod(set_progress_callback),
        "set_mesh": staticmethod(set_mesh),
        "extract_keys": staticmethod(extract_keys),
        "find_strokes": staticmethod(find_strokes),
        "build_triangles": staticmethod(build_triangles),
        "make_meshes": staticmethod(make_meshes),
        "separate": staticmethod(separate),
        "separate_by_color": staticmethod(separate_by_color),
        
        "mesh": property(lambda self: mesh),
        "vertex_keys": property(lambda self: vertex_keys),
        "groups": property(lambda self: groups),
        "triangle_counts": property(lambda self: triangle_counts),
        "triangle_offsets": property(lambda self: triangle_offsets),
        "vertex_map": property(lambda self: vertex_map),
        "new_triangles": property(lambda self: new_triangles),
        "color_buckets": property(lambda self: color_buckets),
    })
    
    separator = separator_type()
    # Assign these directly to instance, to avoid staticmethod indirection
    separator.begin = begin
    separator.advance = advance
    
    return separator

def partition_by_vertex_key(mesh, key_channel="uv2", **options):
    """
    Splits the mesh into one independent mesh per stroke id found in the
    x component of the key channel. Options: epsilon, n_jobs,
    progress_frequency, regroup, report.
    """
    separator = StrokeSeparator(**options)
    separator.set_mesh(mesh)
    return separator.separate(key_channel)

def partition_by_triangle_color(mesh, **options):
    """
    Splits the mesh into one mesh per distinct triangle-averaged color.
    Options: progress_frequency, report.
    """
    separator = StrokeSeparator(**options)
    separator.set_mesh(mesh)
    return separator.separate_by_color()
