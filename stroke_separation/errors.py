# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

class SeparationError(Exception):
    pass

class MissingKeyChannel(SeparationError):
    def __init__(self, channel, mesh_name=""):
        self.channel = channel
        self.mesh_name = mesh_name
        where = (f"Mesh ({mesh_name})" if mesh_name else "Mesh")
        super().__init__(f"{where} has no '{channel}' data")

class BoundsViolation(SeparationError):
    "A range does not fit its buffer (counts, remap and triangles disagree)"
    
    def __init__(self, what, start, count, size, message=None):
        self.what = what
        self.start = start
        self.count = count
        self.size = size
        if message is None: message = f"range [{start}, {start + count}) exceeds length {size}"
        super().__init__(f"{what}: {message}")

class NonContiguousKeys(SeparationError):
    def __init__(self, key, runs):
        self.key = key
        self.runs = runs
        super().__init__(f"Vertices with key {key} are split into {len(runs)} runs; "
            "regroup the vertices before separating")

class UserCancelled(SeparationError):
    pass
