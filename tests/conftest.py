import numpy as np
import pytest

from stroke_separation import Mesh

def make_strokes(stroke_keys, quads=1, interleave=False, name="sketch"):
    """
    One ribbon of quads per stroke key, vertices of a stroke stored together.
    With interleave=True, triangles of different strokes are mixed.
    """
    verts = []
    normals = []
    uv = []
    colors = []
    keys = []
    faces = []
    for stroke, key in enumerate(stroke_keys):
        base = len(verts)
        for i in range(quads + 1):
            verts.append((float(i), float(stroke), 0.0))
            verts.append((float(i), float(stroke) + 1.0, 0.0))
            uv.append((i / quads, 0.0))
            uv.append((i / quads, 1.0))
        count = len(verts) - base
        normals.extend([(0.0, 0.0, 1.0)] * count)
        colors.extend([(stroke / 10.0, 0.5, 0.25, 1.0)] * count)
        keys.extend([key] * count)
        for i in range(quads):
            a = base + i*2
            faces.append((a, a+1, a+2))
            faces.append((a+1, a+3, a+2))
    faces = np.array(faces, dtype=np.int64).reshape(-1, 3)
    if interleave:
        faces = faces[np.random.default_rng(7).permutation(len(faces))]
    return Mesh(verts, faces, normals=normals, uv=uv, colors=colors,
        channels={"uv2": np.column_stack((keys, np.zeros(len(keys)), np.zeros(len(keys))))}, name=name)

@pytest.fixture
def two_strokes():
    # 2 strokes, keys 0.0 and 1.0, 4 vertices and 2 triangles each
    return make_strokes([0.0, 1.0], quads=1)

@pytest.fixture
def many_strokes():
    return make_strokes([0.5, 0.125, 3.0, 2.75, 10.0, 7.5], quads=5, interleave=True)
