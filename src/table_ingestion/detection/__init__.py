"""
Table detection: layout analysis, text patterns and the assembly policy.
"""

from .layout import LayoutTableDetector
from .text_pattern import TextPatternTableDetector
from .assembly import TableAssembler, combine_text_sources

__all__ = [
    'LayoutTableDetector',
    'TextPatternTableDetector',
    'TableAssembler',
    'combine_text_sources',
]
