"""
dataroom.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and persistence decisions.
- Role bootstrap and upload coordination.
"""

# Package marker.
