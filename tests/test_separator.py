import numpy as np
import pytest

from stroke_separation import (StrokeSeparator, Mesh, partition_by_vertex_key,
    MissingKeyChannel, NonContiguousKeys, UserCancelled, BoundsViolation)

from conftest import make_strokes

def test_two_strokes_scenario(two_strokes):
    meshes = partition_by_vertex_key(two_strokes, "uv2")
    assert len(meshes) == 2
    for mesh in meshes:
        assert mesh.vertex_count == 4
        assert mesh.triangle_count == 2
        assert mesh.triangles.min() >= 0 and mesh.triangles.max() < 4

def test_empty_key_channel():
    mesh = make_strokes([0.0, 1.0])
    mesh.channels["uv2"] = np.zeros((0, 3))
    with pytest.raises(MissingKeyChannel):
        partition_by_vertex_key(mesh, "uv2")

def test_nothing_dropped_or_duplicated(many_strokes):
    meshes = partition_by_vertex_key(many_strokes, n_jobs=3)
    assert sum(m.vertex_count for m in meshes) == many_strokes.vertex_count
    assert sum(m.triangle_count for m in meshes) == many_strokes.triangle_count
    for mesh in meshes:
        assert mesh.triangles.min() >= 0
        assert mesh.triangles.max() < mesh.vertex_count

def test_triangles_spanning_strokes_fail():
    keys = [0.0] * 3 + [1.0] * 5
    mesh = Mesh(np.arange(24.0).reshape(8, 3), [0, 1, 7, 3, 4, 5, 5, 6, 7], channels={"uv2": keys}, name="x")
    with pytest.raises(BoundsViolation):
        partition_by_vertex_key(mesh, n_jobs=2)

def test_drifting_ids_fail_instead_of_dropping_triangles():
    keys = [0.0, 0.6e-5, 1.2e-5, 1.2e-5]
    mesh = Mesh(np.arange(12.0).reshape(4, 3), [0, 1, 2, 1, 3, 2], channels={"uv2": keys}, name="x")
    with pytest.raises(BoundsViolation):
        partition_by_vertex_key(mesh)

def test_geometry_is_preserved(many_strokes):
    meshes = partition_by_vertex_key(many_strokes)
    source = set()
    for face in many_strokes.faces:
        source.add(tuple(map(tuple, many_strokes.vertices[face].tolist())))
    parts = set()
    for mesh in meshes:
        for face in mesh.faces:
            parts.add(tuple(map(tuple, mesh.vertices[face].tolist())))
    assert parts == source

def test_group_order_is_deterministic(many_strokes):
    first = [m.key for m in partition_by_vertex_key(many_strokes)]
    second = [m.key for m in partition_by_vertex_key(many_strokes)]
    assert first == second == [0.5, 0.125, 3.0, 2.75, 10.0, 7.5]

def test_single_stroke():
    mesh = make_strokes([4.0], quads=3)
    meshes = partition_by_vertex_key(mesh)
    assert len(meshes) == 1
    assert meshes[0].vertex_count == mesh.vertex_count
    assert meshes[0].triangle_count == mesh.triangle_count
    assert np.array_equal(meshes[0].triangles, mesh.triangles)

def test_non_contiguous_strokes_fail():
    mesh = make_strokes([0.0, 1.0])
    order = np.array([0, 1, 4, 5, 2, 3, 6, 7])
    mesh = mesh.reordered(order)
    with pytest.raises(NonContiguousKeys):
        partition_by_vertex_key(mesh)

def test_non_contiguous_strokes_regrouped(many_strokes):
    order = np.random.default_rng(3).permutation(many_strokes.vertex_count)
    shuffled = many_strokes.reordered(order)
    meshes = partition_by_vertex_key(shuffled, regroup=True)
    assert len(meshes) == 6
    assert sum(m.triangle_count for m in meshes) == many_strokes.triangle_count
    for mesh in meshes:
        assert mesh.vertex_count == 12
        assert mesh.triangles.max() < 12

def test_source_mesh_untouched(many_strokes):
    vertices = many_strokes.vertices.copy()
    triangles = many_strokes.triangles.copy()
    partition_by_vertex_key(many_strokes)
    assert np.array_equal(many_strokes.vertices, vertices)
    assert np.array_equal(many_strokes.triangles, triangles)

def test_intermediate_state(two_strokes):
    separator = StrokeSeparator(n_jobs=1)
    separator.set_mesh(two_strokes)
    separator.extract_keys("uv2")
    groups = separator.find_strokes()
    assert [group.key for group in groups] == [0.0, 1.0]
    separator.build_triangles()
    assert separator.triangle_counts.tolist() == [6, 6]
    assert separator.triangle_offsets.tolist() == [0, 6]
    assert separator.vertex_map.tolist() == [0, 1, 2, 3, 0, 1, 2, 3]
    meshes = separator.make_meshes()
    assert separator.task_name == "Creating strokes"
    assert separator.progress_relative == 1.0
    assert len(meshes) == 2
    separator.clear()
    assert separator.groups is None

def test_progress_reported(many_strokes):
    fractions = []
    def report(fraction):
        fractions.append(fraction)
        return True
    partition_by_vertex_key(many_strokes, report=report, progress_frequency=1)
    assert fractions
    assert all(0.0 <= f <= 1.0 for f in fractions)

def test_cancel(many_strokes):
    with pytest.raises(UserCancelled):
        partition_by_vertex_key(many_strokes, report=lambda fraction: False, progress_frequency=1)

def test_epsilon_option():
    mesh = make_strokes([1.0, 1.001])
    assert len(partition_by_vertex_key(mesh)) == 2
    assert len(partition_by_vertex_key(mesh, epsilon=0.01)) == 1

def test_invalid_mesh_rejected():
    mesh = Mesh([(0, 0, 0), (1, 0, 0), (0, 1, 0)], [0, 1, 5], channels={"uv2": [0.0, 0.0, 0.0]})
    with pytest.raises(ValueError):
        partition_by_vertex_key(mesh)
