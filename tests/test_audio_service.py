"""Tests for the scan beep."""

import logging

import audio_service
from audio_service import AudioService


class FakeWave:
    def __init__(self):
        self.plays = 0

    def play(self):
        self.plays += 1


class FakeSimpleAudio:
    class WaveObject:
        @staticmethod
        def from_wave_file(path):
            return FakeWave()


class TestAudioService:

    def test_disabled_beep_is_a_no_op(self):
        audio = AudioService(enabled=False)
        assert not audio.enabled
        audio.play_beep()

    def test_missing_beep_file_logged_under_module_logger(self, monkeypatch, caplog, tmp_path):
        monkeypatch.setattr(audio_service, "SA_AVAILABLE", True)
        monkeypatch.setattr(audio_service, "sa", FakeSimpleAudio)

        with caplog.at_level(logging.INFO, logger="audio_service"):
            audio = AudioService(beep_path=str(tmp_path / "missing.wav"))

        assert not audio.enabled
        record = next(r for r in caplog.records if "Beep file not found" in r.getMessage())
        assert record.name == "audio_service"
        assert "[AudioService]" not in record.getMessage()

    def test_beep_loaded_when_file_exists(self, monkeypatch, tmp_path):
        monkeypatch.setattr(audio_service, "SA_AVAILABLE", True)
        monkeypatch.setattr(audio_service, "sa", FakeSimpleAudio)
        wav = tmp_path / "beep.wav"
        wav.write_bytes(b"RIFF")

        assert AudioService(beep_path=str(wav)).enabled
