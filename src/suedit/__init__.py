"""
suedit - Edit privileged files through an unprivileged staging copy.

Copies a root-owned file into a scratch area, lets the operator edit the
copy with any tool, then writes it back with sudo and restores the
original permission bits.
"""

__version__ = "1.0.0"
__author__ = "suedit maintainers"
