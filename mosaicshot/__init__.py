"""
MosaicShot - region screenshot annotation tool.

This package contains the main application modules:
- core: Geometry, pixel buffers, selection state machine, capture controller
- editor: Annotation model, mosaic engine, tools, editing session, compositor
- services: Application services (config, logging)
- ui: Host overlay widget that feeds input into the controller
"""

__version__ = "0.1.0"
