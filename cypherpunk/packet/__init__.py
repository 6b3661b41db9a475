"""
Cypherpunk Packet Module

Output representations for finished remailer messages.
"""

from .format import (
    OutputFormat,
    format_result,
    parse_native,
    output_filename,
)

__all__ = [
    'OutputFormat',
    'format_result',
    'parse_native',
    'output_filename',
]
