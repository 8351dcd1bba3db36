import numpy as np

from stroke_separation import Mesh, partition_by_triangle_color
from stroke_separation.color_partition import ColorKey, group_triangles_by_color, color_meshes
from stroke_separation.keys import triangle_color_keys

def make_two_triangles(second_color):
    verts = [(0, 0, 0), (1, 0, 0), (0, 1, 0), (2, 0, 0), (3, 0, 0), (2, 1, 0)]
    colors = [(0.2, 0.4, 0.6, 1.0)] * 3 + [second_color] * 3
    return Mesh(verts, [0, 1, 2, 3, 4, 5], colors=colors, name="paint")

def test_color_key_equality_is_exact():
    assert ColorKey(0.1, 0.2, 0.3) == ColorKey(0.1, 0.2, 0.3)
    assert hash(ColorKey(0.1, 0.2, 0.3)) == hash(ColorKey(0.1, 0.2, 0.3))
    assert ColorKey(0.1, 0.2, 0.3) != ColorKey(0.1, 0.2, 0.3 + 1e-12)
    assert tuple(ColorKey(1, 0, 0)) == (1.0, 0.0, 0.0)

def test_identical_colors_make_one_bucket():
    mesh = make_two_triangles((0.2, 0.4, 0.6, 1.0))
    buckets = group_triangles_by_color(mesh)
    assert len(buckets) == 1
    assert list(buckets.values())[0] == [0, 1, 2, 3, 4, 5]

def test_different_colors_make_two_buckets():
    mesh = make_two_triangles((0.9, 0.1, 0.0, 1.0))
    meshes = partition_by_triangle_color(mesh)
    assert len(meshes) == 2
    assert [m.triangles.tolist() for m in meshes] == [[0, 1, 2], [3, 4, 5]]
    assert [m.name for m in meshes] == ["paint 0", "paint 1"]
    # Vertices are not re-indexed
    assert all(m.vertex_count == 6 for m in meshes)

def test_every_triangle_in_one_bucket(many_strokes):
    buckets = group_triangles_by_color(many_strokes)
    keys = triangle_color_keys(many_strokes)
    seen = []
    for color, indices in buckets.items():
        faces = np.asarray(indices).reshape(-1, 3)
        for face in faces.tolist():
            seen.append(tuple(face))
            t = many_strokes.faces.tolist().index(face)
            assert tuple(keys[t]) == tuple(color)
    assert sorted(seen) == sorted(map(tuple, many_strokes.faces.tolist()))

def test_meshes_keep_bucket_key(many_strokes):
    buckets = group_triangles_by_color(many_strokes)
    meshes = color_meshes(many_strokes, buckets)
    assert [m.key for m in meshes] == [tuple(color) for color in buckets]
    meshes[0].colors[:] = 0.0
    assert np.any(many_strokes.colors != 0.0)

def test_progress_per_triangle(many_strokes):
    seen = []
    group_triangles_by_color(many_strokes, advance=seen.append)
    assert seen == list(range(many_strokes.triangle_count))
