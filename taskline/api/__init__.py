"""Taskline HTTP API.

Usage
-----
::

    from taskline.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # ingestion and project endpoints

"""

from taskline.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
