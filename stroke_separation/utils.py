# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 dairin0d https://github.com/dairin0d

import math

import numpy as np

# Stroke ids are written once by the exporter (e.g. stroke timestamps) and
# are never derived here by arithmetic, so comparing them with a fixed
# epsilon behaves as an equivalence relation. Ids that drift upstream
# (e.g. computed by adding two floats) break this assumption.
key_epsilon = 1e-5

floor = math.floor

def floats_equal(a, b, epsilon=key_epsilon):
    return abs(a - b) < epsilon

def keys_match(keys, key, epsilon=key_epsilon):
    "Returns a boolean mask of the keys equal to the given key"
    return np.abs(keys - key) < epsilon

def exclusive_prefix_sum(counts):
    counts = np.asarray(counts, dtype=np.int64)
    offsets = np.zeros(len(counts), dtype=np.int64)
    if len(counts) > 1: offsets[1:] = np.cumsum(counts[:-1])
    return offsets

def get_option(options, name, default):
    result = options.get(name)
    return (default if result is None else result)
