# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

import numpy as np

from .utils import *
from .errors import NonContiguousKeys

class Group:
    def __init__(self, index, key):
        self.index = index
        self.key = key
        self.vertex_count = 0
        self.runs = [] # (start, end) vertex ranges, in vertex order
    
    @property
    def vertex_start(self):
        return (self.runs[0][0] if self.runs else 0)
    
    @property
    def is_contiguous(self):
        return len(self.runs) <= 1
    
    def __repr__(self):
        return f"<Group {self.index} key={self.key} verts={self.vertex_count} runs={len(self.runs)}>"

class KeyBuckets:
    """
    Epsilon-equality lookup: each key is stored in the bucket of width
    epsilon that contains it, and a query checks the neighbouring buckets
    """
    
    def __init__(self, epsilon):
        self.epsilon = epsilon
        self.buckets = {}
    
    def find(self, key):
        slot = floor(key / self.epsilon)
        for s in (slot, slot - 1, slot + 1):
            for group in self.buckets.get(s, ()):
                if floats_equal(group.key, key, self.epsilon): return group
        return None
    
    def add(self, group):
        slot = floor(group.key / self.epsilon)
        self.buckets.setdefault(slot, []).append(group)

def discover_groups(keys, epsilon=key_epsilon):
    """
    keys: per-vertex stroke ids
    Returns the distinct keys as Groups, in the order of their first occurrence.
    Consecutive vertices with equal keys are collected into runs, so the
    cost is linear in the vertex count. Every vertex of a run matches the
    key of its group (the same test the per-group jobs use), so slowly
    drifting ids end up in separate groups instead of being lost later.
    """
    keys = np.asarray(keys, dtype=np.float64).ravel()
    count = len(keys)
    if count == 0: return []
    
    breaks = np.flatnonzero(np.abs(np.diff(keys)) >= epsilon) + 1
    starts = [0] + breaks.tolist()
    ends = breaks.tolist() + [count]
    
    groups = []
    buckets = KeyBuckets(epsilon)
    
    for start, end in zip(starts, ends):
        while start < end:
            key = float(keys[start])
            group = buckets.find(key)
            if group is None:
                group = Group(len(groups), key)
                groups.append(group)
                buckets.add(group)
            
            # Neighbours may be within epsilon of each other but not of the group key
            mismatches = np.flatnonzero(~keys_match(keys[start:end], group.key, epsilon))
            stop = (start + int(mismatches[0]) if len(mismatches) else end)
            
            group.runs.append((start, stop))
            group.vertex_count += stop - start
            start = stop
    
    return groups

def check_contiguous(groups):
    for group in groups:
        if not group.is_contiguous: raise NonContiguousKeys(group.key, group.runs)

def regroup_order(groups):
    """
    Returns the vertex permutation that makes each group contiguous:
    groups follow each other in first-occurrence order, and vertices
    of a group keep their relative order
    """
    ranges = [np.arange(start, end) for group in groups for start, end in group.runs]
    if not ranges: return np.zeros(0, dtype=np.int64)
    return np.concatenate(ranges).astype(np.int64)
