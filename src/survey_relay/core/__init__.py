"""
Core data and analytics layer.

This package contains:
- data_loader: load the bundled survey responses once per process
- filters: parse and evaluate row filters (literal values and operator predicates)
- query_engine: filter / summary / stats / sample queries used by both handlers
"""
