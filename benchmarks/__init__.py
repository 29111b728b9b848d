"""
Benchmark suite for jmapper mapping performance.

Compares jmapper against standard JSON libraries including:
- Python standard library json
- orjson (C-optimized)
- ujson (ultra-fast JSON)

Measures serialization and deserialization speed and memory usage for
typed object graphs and dynamic documents.
"""
