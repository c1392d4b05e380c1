"""
applspeech.inputs - Audio input resolution.

Normalizes local paths, URLs, Telegram file ids and stdin into a local
file with a cleanup obligation.
"""

from __future__ import annotations
