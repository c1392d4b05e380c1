"""
applspeech.analyze - Voice analysis.

Measures pitch, tempo, volume, jitter and shimmer of a recording with
librosa.
"""

from __future__ import annotations
