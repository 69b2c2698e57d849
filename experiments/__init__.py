"""
Experiments Module

Experiment configuration, evaluation runs and CLI.

This module provides:
- YAML-based configuration loading and saving
- API key resolution from config, environment or user config file
- Dataset evaluation runs with per-example outcomes
- CLI for evaluate / optimize / validate / listing commands
"""

__version__ = "0.1.0"
