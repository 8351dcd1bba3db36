# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

import numpy as np

def as_attribute(data, width):
    if data is None: return None
    data = np.asarray(data, dtype=np.float64)
    if data.size == 0: return None
    data = data.reshape(len(data), -1)
    # RGB colors get an opaque alpha
    if (width == 4) and (data.shape[1] == 3):
        data = np.hstack((data, np.ones((len(data), 1))))
    return data

def as_channel(data):
    data = np.asarray(data, dtype=np.float64)
    if data.ndim == 1: data = data.reshape(-1, 1)
    return data

class Mesh:
    """
    vertices: (N, 3) positions
    triangles: flat buffer of 3*T vertex indices (an (T, 3) array is flattened)
    normals, uv, colors: optional per-vertex (N, 3), (N, 2), (N, 4) arrays
    channels: auxiliary per-vertex arrays by name (e.g. "uv2" with the
        stroke id in its x component); they are not used for rendering
    """
    
    def __init__(self, vertices, triangles, normals=None, uv=None, colors=None, channels=None, name=""):
        self.name = name
        self.vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        self.triangles = np.asarray(triangles, dtype=np.int64).reshape(-1)
        self.normals = as_attribute(normals, 3)
        self.uv = as_attribute(uv, 2)
        self.colors = as_attribute(colors, 4)
        self.channels = {key: as_channel(data) for key, data in (channels or {}).items()}
    
    @property
    def vertex_count(self):
        return len(self.vertices)
    
    @property
    def triangle_count(self):
        return len(self.triangles) // 3
    
    @property
    def faces(self):
        return self.triangles.reshape(-1, 3)
    
    def attributes(self):
        yield "vertices", self.vertices
        yield "normals", self.normals
        yield "uv", self.uv
        yield "colors", self.colors
    
    def validate(self):
        if len(self.triangles) % 3 != 0:
            raise ValueError(f"Mesh ({self.name}): index count {len(self.triangles)} is not divisible by 3")
        
        count = self.vertex_count
        if len(self.triangles) > 0:
            lo = int(self.triangles.min())
            hi = int(self.triangles.max())
            if (lo < 0) or (hi >= count):
                raise ValueError(f"Mesh ({self.name}): triangle indices [{lo}, {hi}] outside [0, {count})")
        
        for what, data in self.attributes():
            if (data is not None) and (len(data) != count):
                raise ValueError(f"Mesh ({self.name}): {what} has {len(data)} entries, expected {count}")
        
        # Empty channels count as absent
        for key, data in self.channels.items():
            if len(data) and (len(data) != count):
                raise ValueError(f"Mesh ({self.name}): channel '{key}' has {len(data)} entries, expected {count}")
    
    def reordered(self, order):
        """
        Returns a copy with the vertices permuted so that new vertex i is the
        old vertex order[i]; triangle indices are translated accordingly
        """
        order = np.asarray(order, dtype=np.int64)
        inverse = np.empty_like(order)
        inverse[order] = np.arange(len(order))
        
        def permute(data):
            return (None if data is None else data[order])
        
        return Mesh(self.vertices[order], inverse[self.triangles],
            normals=permute(self.normals), uv=permute(self.uv), colors=permute(self.colors),
            channels={key: (data[order] if len(data) else data) for key, data in self.channels.items()},
            name=self.name)

class OutputMesh(Mesh):
    """
    An independent part of a separated mesh. All buffers are owned
    copies, triangle indices refer only to this mesh's own vertices.
    """
    
    def __init__(self, vertices, triangles, normals=None, uv=None, colors=None, name="", index=0, key=None):
        super().__init__(vertices, triangles, normals=normals, uv=uv, colors=colors, name=name)
        self.index = index
        self.key = key
    
    def __repr__(self):
        return f"<OutputMesh {self.name!r} key={self.key} verts={self.vertex_count} tris={self.triangle_count}>"
