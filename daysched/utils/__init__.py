"""Utility functions."""

from .config import load_config, get_default_config
from .datetime_utils import SLOT_KEYS, NO_SLOT, current_slot, slot_for_time, parse_date, format_date

__all__ = [
    'load_config',
    'get_default_config',
    'SLOT_KEYS',
    'NO_SLOT',
    'current_slot',
    'slot_for_time',
    'parse_date',
    'format_date',
]
