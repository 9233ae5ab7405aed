"""
WaveLens Shared Module
======================

Common configuration, logging, and console utilities used across the
WaveLens analyzer package.
"""

from shared.config import WaveLensConfig, get_config

__all__ = ["WaveLensConfig", "get_config"]
