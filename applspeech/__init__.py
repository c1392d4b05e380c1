"""
applspeech - On-device speech transcription for the command line.

Resolves audio from local paths, URLs, Telegram file ids or stdin into a
local file, then hands it to the platform speech engine: the legacy
single-shot recognizer or the modern streaming transcriber.
"""

__version__ = "0.1.0"
