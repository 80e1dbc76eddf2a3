"""Unit tests for the spectrum analyser and speech-band filter."""

import pytest
import numpy as np

from talk2me.audio.analyser import SpectrumAnalyser
from talk2me.audio.filters import DynamicsCompressor, SpeechBandFilter
from talk2me.audio.metrics import measure_frame


def sine(freq, seconds=1.0, sample_rate=16000, amplitude=0.5):
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    return amplitude * np.sin(2 * np.pi * freq * t)


def rms(values):
    return float(np.sqrt(np.mean(values * values)))


@pytest.mark.unit
class TestSpectrumAnalyser:
    """Test cases for the rolling FFT analyser."""

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            SpectrumAnalyser(fft_size=1000)
        with pytest.raises(ValueError):
            SpectrumAnalyser(smoothing=1.0)
        with pytest.raises(ValueError):
            SpectrumAnalyser(min_db=-30.0, max_db=-100.0)

    def test_no_frame_before_samples(self):
        assert SpectrumAnalyser().frame() is None

    def test_frame_shape(self):
        analyser = SpectrumAnalyser(sample_rate=16000, fft_size=2048)
        analyser.push(sine(440, seconds=0.2))

        frame = analyser.frame()

        assert frame.bin_count == 1024
        assert frame.bin_width == pytest.approx(7.8125)
        assert len(frame.samples) == 2048
        assert np.all(frame.magnitudes >= 0.0) and np.all(frame.magnitudes <= 1.0)

    def test_tone_peaks_at_its_bin(self):
        analyser = SpectrumAnalyser()
        analyser.push(sine(1000, seconds=0.2, amplitude=0.001))

        frame = analyser.frame()

        assert abs(int(np.argmax(frame.magnitudes)) - 128) <= 1

    def test_voice_band_tone_reads_as_speech_band_energy(self):
        analyser = SpectrumAnalyser()
        analyser.push(sine(1000, seconds=0.2))

        metrics = measure_frame(analyser.frame())

        assert metrics.speech_energy > 0.0
        assert metrics.speech_energy > metrics.noise_energy

    def test_silence_has_no_energy(self):
        analyser = SpectrumAnalyser()
        analyser.push(np.zeros(4096))

        metrics = measure_frame(analyser.frame())

        assert metrics.speech_energy == 0.0
        assert metrics.time_energy == 0.0

    def test_smoothing_decays_gradually(self):
        analyser = SpectrumAnalyser(smoothing=0.5)
        analyser.push(sine(1000, seconds=0.2))
        loud = measure_frame(analyser.frame()).speech_energy

        analyser.push(np.zeros(2048))
        decaying = measure_frame(analyser.frame()).speech_energy

        assert 0.0 < decaying < loud

    def test_short_pushes_roll_the_window(self):
        analyser = SpectrumAnalyser(fft_size=64)
        analyser.push(np.ones(48))
        analyser.push(np.full(32, 2.0))

        assert analyser.samples[:32].tolist() == [1.0] * 32
        assert analyser.samples[-32:].tolist() == [2.0] * 32

    def test_reset(self):
        analyser = SpectrumAnalyser()
        analyser.push(sine(1000, seconds=0.1))

        analyser.reset()

        assert analyser.frame() is None


@pytest.mark.unit
class TestSpeechBandFilter:
    """Test cases for the high-pass, notch and low-pass chain."""

    def test_mains_hum_removed(self):
        band_filter = SpeechBandFilter(16000)
        signal_in = sine(60)

        filtered = band_filter.process(signal_in)

        assert rms(filtered[8000:]) < 0.05 * rms(signal_in[8000:])

    def test_voice_band_passes(self):
        band_filter = SpeechBandFilter(16000)
        signal_in = sine(1000)

        filtered = band_filter.process(signal_in)

        assert rms(filtered[8000:]) > 0.9 * rms(signal_in[8000:])

    def test_high_frequencies_attenuated(self):
        band_filter = SpeechBandFilter(16000)
        signal_in = sine(7000)

        filtered = band_filter.process(signal_in)

        assert rms(filtered[8000:]) < 0.3 * rms(signal_in[8000:])

    def test_state_carries_across_chunks(self):
        signal_in = sine(440, seconds=0.5)

        whole = SpeechBandFilter(16000).process(signal_in)
        chunked_filter = SpeechBandFilter(16000)
        chunked = np.concatenate([chunked_filter.process(part) for part in np.array_split(signal_in, 7)])

        assert np.allclose(whole, chunked)

    def test_low_pass_skipped_above_nyquist(self):
        band_filter = SpeechBandFilter(6000)

        assert band_filter.sos.shape[0] == 2

    def test_empty_input(self):
        assert len(SpeechBandFilter(16000).process(np.array([]))) == 0


@pytest.mark.unit
class TestDynamicsCompressor:
    """Test cases for the soft-knee compressor with make-up gain."""

    def test_static_curve_regions(self):
        compressor = DynamicsCompressor(16000)

        below, above = compressor.static_curve(np.array([-80.0, -10.0]))

        assert below == pytest.approx(-80.0)
        assert above == pytest.approx(-50.0 + 40.0 / 12.0)

    def test_knee_is_continuous(self):
        compressor = DynamicsCompressor(16000)

        lower_edge, upper_edge = compressor.static_curve(np.array([-70.0, -30.0]))

        assert lower_edge == pytest.approx(-70.0)
        assert upper_edge == pytest.approx(-50.0 + 20.0 / 12.0)

    def test_makeup_gain_from_full_scale(self):
        compressor = DynamicsCompressor(16000)

        assert compressor.makeup_db == pytest.approx(0.6 * (50.0 - 50.0 / 12.0))

    def test_quiet_speech_is_boosted(self):
        """Test a -30 dBFS voice-band tone comes out roughly twice as loud."""
        signal_in = sine(1000, amplitude=0.0447)

        compressed = DynamicsCompressor(16000).process(signal_in)

        assert rms(compressed[1600:]) > 1.8 * rms(signal_in[1600:])

    def test_loud_input_is_attenuated(self):
        signal_in = sine(1000, amplitude=0.5)

        compressed = DynamicsCompressor(16000).process(signal_in)

        assert rms(compressed[1600:]) < 0.5 * rms(signal_in[1600:])

    def test_silence_stays_silent(self):
        assert np.all(DynamicsCompressor(16000).process(np.zeros(512)) == 0.0)

    def test_envelope_carries_across_chunks(self):
        signal_in = sine(440, seconds=0.5, amplitude=0.1)

        whole = DynamicsCompressor(16000).process(signal_in)
        chunked_compressor = DynamicsCompressor(16000)
        chunked = np.concatenate([chunked_compressor.process(part) for part in np.array_split(signal_in, 7)])

        assert np.allclose(whole, chunked)

    def test_invalid_ratio(self):
        with pytest.raises(ValueError):
            DynamicsCompressor(16000, ratio=0.5)
