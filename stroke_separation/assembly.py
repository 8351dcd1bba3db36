# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

from .errors import BoundsViolation
from .mesh import OutputMesh

def slice_range(data, start, count, what):
    if data is None: return None
    if (start < 0) or (count < 0) or (start + count > len(data)):
        raise BoundsViolation(what, start, count, len(data))
    # Copy, so that the new mesh doesn't keep the source buffers alive
    return data[start:start+count].copy()

def part_name(name, index):
    return f"{name} ({index})"

def assemble_meshes(mesh, groups, triangle_counts, triangle_offsets, new_triangles, advance=None, name=None):
    """
    mesh: the source mesh, with the vertices of each group stored
        contiguously, in group order
    groups: groups in first-occurrence order
    triangle_counts, triangle_offsets: number of triangle indices of each
        group and where they start in new_triangles
    new_triangles: rewritten (local) triangle indices of all groups
    advance: optional callback, called after each mesh is made
    
    Raises BoundsViolation (and makes no further meshes) if any range
    does not fit its source array.
    """
    name = (mesh.name if name is None else name)
    advance = advance or (lambda: None)
    
    result = []
    vertex_start = 0
    
    for index, group in enumerate(groups):
        vertex_count = group.vertex_count
        triangle_start = int(triangle_offsets[index])
        triangle_count = int(triangle_counts[index])
        
        triangles = slice_range(new_triangles, triangle_start, triangle_count, f"triangles of group {index}")
        vertices = slice_range(mesh.vertices, vertex_start, vertex_count, f"vertices of group {index}")
        normals = slice_range(mesh.normals, vertex_start, vertex_count, f"normals of group {index}")
        uv = slice_range(mesh.uv, vertex_start, vertex_count, f"uv of group {index}")
        colors = slice_range(mesh.colors, vertex_start, vertex_count, f"colors of group {index}")
        
        result.append(OutputMesh(vertices, triangles, normals=normals, uv=uv, colors=colors,
            name=part_name(name, index), index=index, key=group.key))
        
        vertex_start += vertex_count
        advance()
    
    return result
