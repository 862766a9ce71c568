# File: services/rhythmiq/core/waveform.py
"""
Decorative ECG-like trace for the results chart. It is not derived from the
uploaded image.
"""
from typing import List, Optional

import numpy as np

WAVEFORM_LENGTH = 200
NOISE_AMPLITUDE = 0.1
BASELINE = 0.5


def generate_synthetic_waveform(
    length: int = WAVEFORM_LENGTH,
    rng: Optional[np.random.Generator] = None,
) -> List[float]:
    """Two periods of P/QRS/T-shaped sinusoids plus small uniform noise."""
    rng = rng or np.random.default_rng()
    x = np.arange(length) / length * 4 * np.pi

    # P wave
    signal = np.sin(x * 3) * 0.3
    # QRS spike, only near the crest of the carrier
    signal += np.where(np.sin(x) > 0.8, np.sin(x * 20) * 2, 0.0)
    # T wave
    signal += np.sin(x * 1.5) * 0.5

    signal += BASELINE
    signal += (rng.random(length) - 0.5) * NOISE_AMPLITUDE
    return signal.tolist()
