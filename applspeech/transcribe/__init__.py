"""
applspeech.transcribe - Speech engine selection and transcription.

Adapts the legacy single-shot recognizer and the modern streaming
transcriber to one ``transcribe_file`` interface.
"""

from __future__ import annotations
