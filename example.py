import os
import logging
import argparse

from stroke_separation import Mesh, partition_by_vertex_key, partition_by_triangle_color
from mesh_serialization import load_mesh, export_meshes

def make_test_sketch(name, stroke_count, segments):
    # Each stroke is a ribbon of quads; its vertices are stored together
    # and carry the stroke's timestamp in uv2.x
    verts = []
    colors = []
    stroke_ids = []
    tris = []
    for stroke in range(stroke_count):
        base = len(verts)
        color = ((stroke % 3) / 2.0, 0.5, 1.0 - (stroke % 3) / 2.0, 1.0)
        for i in range(segments + 1):
            verts.append((float(i), float(stroke), 0.0))
            verts.append((float(i), float(stroke) + 0.5, 0.0))
        for i in range(segments):
            a = base + i*2
            tris.append((a, a+1, a+2))
            tris.append((a+1, a+3, a+2))
        colors.extend([color] * ((segments + 1) * 2))
        stroke_ids.extend([stroke * 0.25] * ((segments + 1) * 2))
    return Mesh(verts, tris, colors=colors, channels={"uv2": stroke_ids}, name=name)

def main():
    parser = argparse.ArgumentParser(
        description="Separate a sketch mesh into one mesh per stroke (or per color)."
    )
    parser.add_argument(
        "--input", type=str, default=None,
        help="Mesh file to separate (any format trimesh reads); a test sketch is used if omitted"
    )
    parser.add_argument(
        "--output_dir", type=str, default="./strokes",
        help="Directory to write the separated meshes to"
    )
    parser.add_argument(
        "--mode", choices=("strokes", "color"), default="strokes",
        help="Group by stroke id, or by average triangle color"
    )
    parser.add_argument(
        "--key_attribute", type=str, default="stroke",
        help="Vertex attribute holding the stroke ids"
    )
    parser.add_argument(
        "--file_type", type=str, default="ply",
        help="Format of the written meshes"
    )
    parser.add_argument(
        "--jobs", type=int, default=-1,
        help="Number of worker threads"
    )
    parser.add_argument(
        "--regroup", action="store_true",
        help="Reorder vertices whose strokes are not stored contiguously"
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="[%(name)s] %(message)s")

    if args.input:
        mesh = load_mesh(args.input, key_attribute=args.key_attribute)
    else:
        mesh = make_test_sketch("sketch", 4, 8)

    def report(fraction):
        logging.getLogger("example").debug("%.0f%%", fraction * 100)
        return True

    if args.mode == "color":
        meshes = partition_by_triangle_color(mesh, report=report)
    else:
        meshes = partition_by_vertex_key(mesh, "uv2", n_jobs=args.jobs, regroup=args.regroup, report=report)

    folder = os.path.join(args.output_dir, f"{mesh.name}_submeshes")
    export_meshes(folder, meshes, file_type=args.file_type)

if __name__ == "__main__":
    main()
