"""
Utility functions for the posture coach.
"""

from .geometry import calculate_angle, calculate_distance
from .io_utils import load_config, load_optional_config, load_json, save_json

__all__ = [
    'calculate_angle',
    'calculate_distance',
    'load_config',
    'load_optional_config',
    'load_json',
    'save_json',
]
