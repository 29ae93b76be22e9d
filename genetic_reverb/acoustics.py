"""
Acoustic analysis of impulse responses.

Measures decay time (T60), early decay time (EDT), initial time delay gap
(ITDG), predelay, clarity (C80) and bass ratio (BR) from a single IR.

Pipeline:
    1. Keep only the local maxima of the dB magnitude (envelope isolation)
    2. Locate the onset (largest peak) and drop it with everything before it
    3. Integrate the Schroeder energy-decay curve (EDC) of what remains
    4. Read the descriptors off EDC threshold crossings and band energies

Degenerate input (silence, a single sample, NaN) never raises: thresholds
that are never crossed become +/-inf and empty ratios become NaN.
"""

from typing import Tuple
import math

import numpy as np
from scipy.fft import rfft
from scipy.signal import find_peaks

from .data_models import AcousticDescriptors


# EDC thresholds (dB)
ITDG_FLOOR_DB = -45.0
T30_START_DB = -5.0
T30_END_DB = -35.0
EDT_DB = -10.0

CLARITY_WINDOW = 0.08  # 80 ms

LOW_BAND = (125.0, 500.0)
HIGH_BAND = (500.0, 2000.0)


def isolate_peaks(ir: np.ndarray) -> np.ndarray:
    """
    Keep only the samples at local maxima of the dB magnitude.

    Args:
        ir: Impulse response

    Returns:
        Array of the same length, zero everywhere except at peaks
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        ir_db = 20.0 * np.log10(np.abs(ir))

    peaks, _ = find_peaks(ir_db)
    filtered = np.zeros_like(ir)
    filtered[peaks] = ir[peaks]
    return filtered


def find_onset(filtered: np.ndarray) -> int:
    """Index of the largest absolute amplitude (0 for silence)."""
    if len(filtered) == 0:
        return 0
    magnitude = np.abs(filtered)
    if np.all(np.isnan(magnitude)):
        return 0
    return int(np.nanargmax(magnitude))


def schroeder_curve(signal: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Schroeder backward-integrated energy-decay curve.

    Args:
        signal: Signal to integrate

    Returns:
        Tuple of (energy, energy_db) where energy[n] is the energy remaining
        from sample n onwards and energy_db is relative to the total energy.
        A silent signal yields NaN in energy_db.
    """
    energy = np.cumsum(np.square(signal)[::-1])[::-1]
    total = energy[0] if len(energy) else 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        energy_db = 10.0 * np.log10(energy / total)
    return energy, energy_db


def find_threshold_crossing(edc_db: np.ndarray, threshold_db: float, missing: float = math.inf) -> float:
    """
    First index where the EDC drops below `threshold_db`.

    Returns `missing` when the curve never gets there. The index is
    returned as a float so infinite results compose with arithmetic.
    """
    hits = np.flatnonzero(edc_db < threshold_db)
    if len(hits) == 0:
        return missing
    return float(hits[0])


def find_gap_crossing(edc_db: np.ndarray) -> float:
    """First index where the EDC sits strictly between -45 dB and 0 dB."""
    hits = np.flatnonzero((edc_db < 0.0) & (edc_db > ITDG_FLOOR_DB))
    if len(hits) == 0:
        return math.inf
    return float(hits[0])


def bass_ratio(filtered: np.ndarray, sample_rate: float) -> float:
    """
    Mean dB magnitude in 125-500 Hz minus mean dB magnitude in 500-2000 Hz.

    Computed on the peak-filtered signal. Empty bands give NaN.
    """
    num_samples = len(filtered)
    if num_samples == 0:
        return math.nan

    with np.errstate(divide="ignore", invalid="ignore"):
        spectrum_db = 20.0 * np.log10(np.abs(rfft(filtered)))

    # Bin k sits at k * fs / N
    low_start = math.ceil(LOW_BAND[0] * num_samples / sample_rate)
    low_stop = math.ceil(LOW_BAND[1] * num_samples / sample_rate)
    high_stop = math.floor(HIGH_BAND[1] * num_samples / sample_rate) + 1

    low = spectrum_db[low_start:low_stop]
    high = spectrum_db[low_stop:high_stop]
    if len(low) == 0 or len(high) == 0:
        return math.nan

    with np.errstate(invalid="ignore"):
        return float(np.mean(low) - np.mean(high))


def clarity(energy: np.ndarray, onset: int, sample_rate: float) -> float:
    """
    C80 from the Schroeder energy curve.

    Early energy is [onset, onset + 80 ms), late energy everything after.
    If the 80 ms mark is past the end the late energy is zero.
    """
    if len(energy) == 0:
        return math.nan
    boundary = int(round(CLARITY_WINDOW * sample_rate)) + onset
    total = energy[onset]
    late = energy[boundary] if boundary < len(energy) else 0.0
    early = total - late
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(10.0 * np.log10(np.float64(early) / np.float64(late)))


def analyze(ir: np.ndarray, sample_rate: float) -> AcousticDescriptors:
    """
    Measure the acoustic descriptors of an impulse response.

    Args:
        ir: 1-D impulse response
        sample_rate: Sample rate (Hz)

    Returns:
        AcousticDescriptors with times in seconds and ratios in dB
    """
    ir = np.asarray(ir, dtype=float).ravel()

    filtered = isolate_peaks(ir)
    onset = find_onset(filtered)

    # The onset sample is the direct sound; the EDC describes what follows it
    filtered[:onset + 1] = 0.0

    energy, edc_db = schroeder_curve(filtered)

    itdg = (find_gap_crossing(edc_db) - onset) / sample_rate
    predelay = onset / sample_rate

    # T30 doubled: -5 dB to -35 dB
    start = find_threshold_crossing(edc_db, T30_START_DB, missing=-math.inf)
    end = find_threshold_crossing(edc_db, T30_END_DB)
    t60 = (end - start) * 2.0 / sample_rate

    edt = (find_threshold_crossing(edc_db, EDT_DB) - onset) / sample_rate

    return AcousticDescriptors(
        t60=t60,
        edt=edt,
        itdg=itdg,
        predelay=predelay,
        c80=clarity(energy, onset, sample_rate),
        br=bass_ratio(filtered, sample_rate),
    )
