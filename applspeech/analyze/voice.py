"""
applspeech.analyze.voice - Whole-file voice metrics.

Pitch, tempo, volume, jitter and shimmer for a recording, using librosa.
Metrics that cannot be measured (silence, no voiced frames) are None.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection
from pathlib import Path

import numpy as np
from pydantic import BaseModel

from applspeech.exceptions import AnalysisFailedError, ApplSpeechError
from applspeech.formats import CORE_FORMATS, AudioFormat
from applspeech.validation import check_audio_file, check_ffmpeg

logger = logging.getLogger(__name__)

# Formats libsndfile cannot decode; librosa falls back to audioread/ffmpeg.
_NEEDS_FFMPEG = {AudioFormat.M4A}


class VoiceAnalysis(BaseModel):
    """Voice metrics for one recording.

    pitch is the median voiced f0 in Hz, tempo in BPM, volume the mean RMS
    in dBFS. jitter and shimmer are local relative perturbations.
    """

    pitch: float | None = None
    tempo: float | None = None
    volume: float | None = None
    jitter: float | None = None
    shimmer: float | None = None


def _extract_f0(audio: np.ndarray, sr: int) -> np.ndarray:
    """Voiced f0 frames from librosa.pyin, NaNs removed."""
    import librosa

    f0, voiced_flags, _ = librosa.pyin(
        audio,
        fmin=librosa.note_to_hz("C2"),
        fmax=librosa.note_to_hz("C7"),
        sr=sr,
    )
    if f0 is None:
        return np.array([])
    voiced = f0[voiced_flags]
    return voiced[~np.isnan(voiced)]


def _pitch(voiced_f0: np.ndarray) -> float | None:
    if len(voiced_f0) == 0:
        return None
    return round(float(np.median(voiced_f0)), 2)


def _jitter(voiced_f0: np.ndarray) -> float | None:
    """Mean absolute difference of consecutive periods over the mean period."""
    if len(voiced_f0) < 2:
        return None
    periods = 1.0 / voiced_f0
    return round(float(np.mean(np.abs(np.diff(periods))) / np.mean(periods)), 4)


def _shimmer(rms: np.ndarray) -> float | None:
    """Mean absolute difference of consecutive frame amplitudes over the mean amplitude."""
    frames = rms[rms > 0]
    if len(frames) < 2:
        return None
    return round(float(np.mean(np.abs(np.diff(frames))) / np.mean(frames)), 4)


def _volume(rms: np.ndarray) -> float | None:
    mean_rms = float(np.mean(rms)) if len(rms) else 0.0
    if mean_rms <= 0.0:
        return None
    return round(20.0 * float(np.log10(mean_rms)), 2)


def _tempo(audio: np.ndarray, sr: int) -> float | None:
    import librosa

    tempo, _ = librosa.beat.beat_track(y=audio, sr=sr)
    bpm = float(np.atleast_1d(tempo)[0])
    if bpm <= 0.0:
        return None
    return round(bpm, 2)


def analyze_signal(audio: np.ndarray, sr: int) -> VoiceAnalysis:
    """Compute voice metrics for a mono signal.

    Args:
        audio: Mono audio signal
        sr: Sample rate

    Returns:
        VoiceAnalysis with unmeasurable metrics left as None
    """
    import librosa

    if len(audio) == 0:
        return VoiceAnalysis()

    rms = librosa.feature.rms(y=audio)[0]
    volume = _volume(rms)
    if volume is None:
        return VoiceAnalysis()

    voiced_f0 = _extract_f0(audio, sr)
    return VoiceAnalysis(
        pitch=_pitch(voiced_f0),
        tempo=_tempo(audio, sr),
        volume=volume,
        jitter=_jitter(voiced_f0),
        shimmer=_shimmer(rms),
    )


class VoiceAnalyzer:
    """Analyzes local audio files."""

    def __init__(self, formats: Collection[AudioFormat] = CORE_FORMATS) -> None:
        self.formats = formats

    async def analyze_file(self, path: Path) -> VoiceAnalysis:
        """Load ``path`` and compute its voice metrics.

        Raises:
            InputError: If the file is missing or unsupported
            DependencyError: If ffmpeg is needed to decode and is missing
            AnalysisFailedError: If decoding or analysis fails
        """
        fmt = check_audio_file(path, self.formats)
        if fmt in _NEEDS_FFMPEG:
            check_ffmpeg()

        logger.debug("Analyzing voice in %s", path)
        try:
            return await asyncio.to_thread(self._analyze, path)
        except ApplSpeechError:
            raise
        except Exception as e:
            raise AnalysisFailedError(str(e)) from e

    @staticmethod
    def _analyze(path: Path) -> VoiceAnalysis:
        import librosa

        audio, sr = librosa.load(str(path), sr=None, mono=True)
        return analyze_signal(audio, sr)
