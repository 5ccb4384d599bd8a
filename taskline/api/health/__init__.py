"""Liveness and readiness probes.

Usage
-----
::

    from taskline.api.health.resources import HealthResource, ReadyResource
"""
