"""
CODiS Data Orchestration Package

Provides orchestration tools for pulling station observations from the
CODiS climate data service:
- station_data: chunked retrieval, flattening and CSV export per station
"""

__version__ = "1.0.0"
