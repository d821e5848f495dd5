"""
Logbook Backend Package.

Flight logbook for simulated flights built with Flask, SQLAlchemy, and NumPy.

Modules:
    api/         REST endpoints for flight plans, ingestion, views and profiles
    models/      SQLAlchemy ORM models (Flight, ActiveFlightState, TelemetryPoint, StatsCache)
    tracking/    Live flight tracking, telemetry ingestion and waypoint collection
    analytics/   NumPy-based flight metrics, landing and smoothness scoring
    services/    Flight lifecycle, stats aggregation, read views and background tasks
    cache.py     Thread-safe in-memory cache for live flight views
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
