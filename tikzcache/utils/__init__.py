"""
Shared utilities for TIKZCACHE.

Common functionality used across contexts:
- Logger setup
- Settings loading
- Pipeline event logging
- Timestamps
"""

from tikzcache.utils.config import load_settings
from tikzcache.utils.timestamp import now, now_exact

__all__ = ["load_settings", "now", "now_exact"]
