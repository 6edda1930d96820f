"""HTTP API layer for the resilient request layer.

This module provides FastAPI integration exposing telemetry snapshots.
It's an optional component that requires the 'http' extra to be installed:

    pip install resilient-api-sdk[http]
"""
