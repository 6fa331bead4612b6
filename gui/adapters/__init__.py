"""GUI adapter layer.

This package provides thin Qt-shaped adapters over engine form instances.

Notes
-----
Adapters exist to:
- keep GUI code free of asyncio and remote-service details,
- keep remote calls off the UI thread,
- translate engine domain errors into user-visible messages.
"""
