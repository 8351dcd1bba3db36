# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

import numpy as np

from .errors import MissingKeyChannel

def extract_vertex_keys(mesh, channel="uv2"):
    """
    Returns the stroke id of each vertex (x component of the channel).
    Raises MissingKeyChannel if the channel is absent or empty.
    """
    data = mesh.channels.get(channel)
    if (data is None) or (len(data) == 0):
        raise MissingKeyChannel(channel, mesh.name)
    return np.ascontiguousarray(data[:, 0])

def require_colors(mesh):
    if mesh.colors is None: raise MissingKeyChannel("colors", mesh.name)
    return mesh.colors

def extract_triangle_key(mesh, triangle):
    """
    triangle: index of the triangle
    Returns the average (r, g, b) of the triangle's vertex colors
    """
    colors = require_colors(mesh)
    i = triangle * 3
    vi0, vi1, vi2 = mesh.triangles[i:i+3]
    c0 = colors[vi0, :3]
    c1 = colors[vi1, :3]
    c2 = colors[vi2, :3]
    return (c0 + c1 + c2) / 3.0

def triangle_color_keys(mesh):
    "Average (r, g, b) of every triangle, as a (T, 3) array"
    colors = require_colors(mesh)[:, :3]
    faces = mesh.faces
    # Same summation order as extract_triangle_key, so results are bit-identical
    return (colors[faces[:, 0]] + colors[faces[:, 1]] + colors[faces[:, 2]]) / 3.0
