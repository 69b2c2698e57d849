"""
Store Module

Compiled artifact persistence layer.

This module provides:
- One JSON file per compiled artifact, named by module id and epoch millis
- Loading by path and latest-artifact lookup per module
- Artifact listing for the CLI
"""

__version__ = "0.1.0"
