# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

from .keys import triangle_color_keys
from .mesh import OutputMesh

# Note: unlike the stroke ids, colors are compared exactly. Two triangles
# land in the same bucket only if their averaged colors are bit-identical,
# which holds for strokes painted with one brush color.

class ColorKey:
    __slots__ = ("r", "g", "b")
    
    def __init__(self, r, g, b):
        self.r = float(r)
        self.g = float(g)
        self.b = float(b)
    
    def __eq__(self, other):
        if not isinstance(other, ColorKey): return NotImplemented
        return (self.r == other.r) and (self.g == other.g) and (self.b == other.b)
    
    def __hash__(self):
        return hash((self.r, self.g, self.b))
    
    def __iter__(self):
        yield self.r
        yield self.g
        yield self.b
    
    def __repr__(self):
        return f"ColorKey({self.r}, {self.g}, {self.b})"

def group_triangles_by_color(mesh, advance=None):
    """
    Returns a dict of ColorKey -> flat list of triangle indices, with
    colors in the order they were first seen
    advance: optional callback, called with the triangle index as the scan goes
    """
    advance = advance or (lambda t: None)
    
    keys = triangle_color_keys(mesh).tolist()
    triangles = mesh.triangles.tolist()
    
    buckets = {}
    buckets_get = buckets.get
    
    for t, (r, g, b) in enumerate(keys):
        color = ColorKey(r, g, b)
        bucket = buckets_get(color)
        if bucket is None:
            bucket = []
            buckets[color] = bucket
        i = t * 3
        bucket.extend(triangles[i:i+3])
        advance(t)
    
    return buckets

def color_meshes(mesh, buckets, name=None):
    """
    Makes one mesh per color bucket. Vertices are not re-indexed: each
    mesh gets (a copy of) all the source vertices.
    """
    name = (mesh.name if name is None else name)
    
    def copy(data):
        return (None if data is None else data.copy())
    
    result = []
    for index, (color, triangles) in enumerate(buckets.items()):
        result.append(OutputMesh(copy(mesh.vertices), triangles,
            normals=copy(mesh.normals), uv=copy(mesh.uv), colors=copy(mesh.colors),
            name=f"{name} {index}", index=index, key=tuple(color)))
    return result
