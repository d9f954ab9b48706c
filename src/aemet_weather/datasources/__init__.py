"""External data source integrations.

Each subdirectory is one data source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants, lookup tables
    ├── models.py         # Dataclasses for computed results (optional)
    └── {feature}.py      # Fetch / parse / compute functions

Only ``aemet/`` exists today. Fetch functions return loose JSON; parsing into
``aemet_weather.schemas`` models happens in the feature modules, and the
``AemetClient`` facade (``aemet_weather.aemet``) wires them together.
"""
