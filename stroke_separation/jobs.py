# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

import numpy as np
from joblib import Parallel, delayed

from .utils import *
from .errors import BoundsViolation

# All jobs here are indexed by group (the n-th stroke). Each job writes
# only to its own group's slot of a per-group array, or to its own region
# of a shared buffer, so they can run on threads without any locking.
#
# 1. triangle_count_jobs: how many triangle indices each group will have.
# 2. vertex_map_jobs: maps each vertex of the source mesh to its index
#    in the vertex array of its group's new mesh.
# 3. triangle_copy_jobs: fills one buffer holding all the new triangle
#    arrays back to back. It depends on (1) to find where each group's
#    region starts, and on (2) to translate the indices, so it may only be
#    scheduled after both have completed.

def run_jobs(jobs, n_jobs=None, batch_size=None, on_batch=None):
    """
    jobs: collection of callables without arguments
    n_jobs: number of worker threads (joblib semantics; None means 1)
    batch_size: how many jobs to run between on_batch() calls
    on_batch: called on the calling thread with the number of jobs just
        finished; an exception raised from it stops the remaining batches
    
    Returns only after every job has finished.
    """
    jobs = list(jobs)
    if not jobs: return
    
    batch_size = max(int(batch_size or len(jobs)), 1)
    
    # Threads, since the jobs write into shared numpy buffers
    with Parallel(n_jobs=n_jobs, prefer="threads", require="sharedmem") as parallel:
        for start in range(0, len(jobs), batch_size):
            batch = jobs[start:start+batch_size]
            parallel(delayed(job)() for job in batch)
            if on_batch: on_batch(len(batch))

def first_vertex_keys(triangles, vertex_keys):
    # A triangle belongs to the group of its first vertex
    return vertex_keys[triangles[0::3]]

def triangle_count_jobs(first_keys, group_keys, triangle_counts, epsilon=key_epsilon):
    def count_job(index):
        matches = keys_match(first_keys, group_keys[index], epsilon)
        triangle_counts[index] = np.count_nonzero(matches) * 3
    
    return [(lambda index=index: count_job(index)) for index in range(len(group_keys))]

def vertex_map_jobs(vertex_keys, group_keys, vertex_map, epsilon=key_epsilon):
    # Vertices of a group are expected to be contiguous, so the local index
    # is the offset from the first vertex of the group's run
    def map_job(index):
        matches = keys_match(vertex_keys, group_keys[index], epsilon)
        start = int(np.argmax(matches))
        if not matches[start]: return
        
        # The run ends at the first non-matching vertex
        rest = np.flatnonzero(~matches[start:])
        end = (start + int(rest[0]) if len(rest) else len(matches))
        
        vertex_map[start:end] = np.arange(end - start)
    
    return [(lambda index=index: map_job(index)) for index in range(len(group_keys))]

def check_triangle_total(triangle_counts, index_count):
    # Each triangle must be counted by exactly one group
    total = int(np.sum(triangle_counts))
    if total != index_count:
        raise BoundsViolation("triangle counts", 0, total, index_count,
            f"groups own {total} triangle indices, the mesh has {index_count}")

def triangle_copy_jobs(triangles, vertex_keys, group_keys, vertex_map, triangle_counts,
                       triangle_offsets, new_triangles, epsilon=key_epsilon):
    faces = triangles.reshape(-1, 3)
    first_keys = first_vertex_keys(triangles, vertex_keys)
    
    def copy_job(index):
        what = f"triangles of group {index}"
        key = group_keys[index]
        selected = faces[keys_match(first_keys, key, epsilon)]
        start = int(triangle_offsets[index])
        count = int(triangle_counts[index])
        
        # Local indices are only valid for vertices of this group
        strays = np.count_nonzero(~np.all(keys_match(vertex_keys[selected], key, epsilon), axis=1))
        if strays:
            raise BoundsViolation(what, start, count, len(new_triangles),
                f"{strays} triangle(s) also use vertices of another group")
        
        region = vertex_map[selected].ravel()
        if len(region) != count:
            raise BoundsViolation(what, start, count, len(new_triangles),
                f"found {len(region)} triangle indices, expected {count}")
        if start + count > len(new_triangles):
            raise BoundsViolation(what, start, count, len(new_triangles))
        
        new_triangles[start:start+count] = region
    
    return [(lambda index=index: copy_job(index)) for index in range(len(group_keys))]

def count_triangles(triangles, vertex_keys, group_keys, epsilon=key_epsilon, **options):
    """
    Returns the number of triangle indices (3 per triangle) of each group
    """
    triangles = np.asarray(triangles, dtype=np.int64).ravel()
    vertex_keys = np.asarray(vertex_keys, dtype=np.float64)
    triangle_counts = np.zeros(len(group_keys), dtype=np.int64)
    first_keys = first_vertex_keys(triangles, vertex_keys)
    run_jobs(triangle_count_jobs(first_keys, group_keys, triangle_counts, epsilon), **options)
    return triangle_counts

def remap_vertices(vertex_keys, group_keys, epsilon=key_epsilon, **options):
    """
    Returns the local (per-group) index of each vertex
    """
    vertex_keys = np.asarray(vertex_keys, dtype=np.float64)
    vertex_map = np.zeros(len(vertex_keys), dtype=np.int64)
    run_jobs(vertex_map_jobs(vertex_keys, group_keys, vertex_map, epsilon), **options)
    return vertex_map

def rewrite_triangles(triangles, vertex_keys, group_keys, vertex_map, triangle_counts,
                      epsilon=key_epsilon, **options):
    """
    Returns (new_triangles, triangle_offsets): the triangles of all groups
    with local indices, stored back to back, and where each group starts
    """
    triangles = np.asarray(triangles, dtype=np.int64).ravel()
    vertex_keys = np.asarray(vertex_keys, dtype=np.float64)
    triangle_counts = np.asarray(triangle_counts, dtype=np.int64)
    check_triangle_total(triangle_counts, len(triangles))
    
    # Offsets are fixed before any job writes, so the regions are disjoint
    triangle_offsets = exclusive_prefix_sum(triangle_counts)
    new_triangles = np.zeros(len(triangles), dtype=np.int64)
    
    jobs = triangle_copy_jobs(triangles, vertex_keys, group_keys, vertex_map,
        triangle_counts, triangle_offsets, new_triangles, epsilon)
    run_jobs(jobs, **options)
    
    return new_triangles, triangle_offsets
