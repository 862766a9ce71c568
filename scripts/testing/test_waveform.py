# scripts/testing/test_waveform.py
import numpy as np

from rhythmiq.client.chart import waveform_path, waveform_points
from rhythmiq.core.waveform import WAVEFORM_LENGTH, generate_synthetic_waveform


def test_always_200_samples():
    for _ in range(5):
        assert len(generate_synthetic_waveform()) == WAVEFORM_LENGTH == 200


def test_samples_are_plain_floats():
    assert all(isinstance(v, float) for v in generate_synthetic_waveform())


def test_same_seed_same_trace():
    a = generate_synthetic_waveform(rng=np.random.default_rng(7))
    b = generate_synthetic_waveform(rng=np.random.default_rng(7))
    assert a == b


def test_shape_is_stable_across_noise():
    a = np.array(generate_synthetic_waveform(rng=np.random.default_rng(1)))
    b = np.array(generate_synthetic_waveform(rng=np.random.default_rng(2)))
    # only the +/-0.05 noise differs
    assert np.max(np.abs(a - b)) <= 0.1


def test_values_stay_in_envelope():
    data = np.array(generate_synthetic_waveform())
    assert data.max() <= 3.35
    assert data.min() >= -2.35
    # QRS spikes push well above the P/T baseline
    assert data.max() > 1.5


def test_custom_length():
    assert len(generate_synthetic_waveform(length=50)) == 50


# --- CHART ---
def test_points_are_normalized_into_band():
    points = waveform_points([0.0, 5.0, 10.0])
    assert points == [(0.0, 90.0), (50.0, 50.0), (100.0, 10.0)]


def test_flat_trace_draws_midline():
    points = waveform_points([1.0, 1.0, 1.0])
    assert [y for _, y in points] == [50.0, 50.0, 50.0]


def test_path_format():
    assert waveform_path([0.0, 1.0]) == "M 0.0,90.0 L 100.0,10.0"
    assert waveform_path([]) == ""
