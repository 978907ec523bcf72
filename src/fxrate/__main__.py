"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Allows `python -m fxrate`.
"""

from .cli import entrypoint

entrypoint()
