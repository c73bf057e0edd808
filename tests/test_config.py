"""
Tests for environment-driven settings.
"""

from pathlib import Path

import pytest

from rps_vision.services.config import DEFAULT_API_BASE_URL, Settings

ENV_VARS = [
    "GESTURE_BACKEND", "GESTURE_API_BASE_URL", "GESTURE_PREDICT_PATH", "GESTURE_PREDICT_TIMEOUT",
    "GESTURE_WARMUP_TIMEOUT", "GESTURE_WARMUP_RETRIES", "GESTURE_WARMUP_DELAY",
    "GESTURE_WARMUP_ON_START", "GESTURE_MODEL_DIR", "GESTURE_LABELS", "GESTURE_INPUT_SIZE",
    "GESTURE_UPLOAD_MAX_SIZE", "GESTURE_UPLOAD_QUALITY", "FALLBACK_RANDOM",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettingsFromEnv:

    def test_defaults(self, clean_env):
        s = Settings.from_env()
        assert s.backend == "remote"
        assert s.api_base_url == DEFAULT_API_BASE_URL
        assert s.predict_timeout == 60.0
        assert s.warmup_timeout == 10.0
        assert (s.warmup_retries, s.warmup_delay) == (2, 3.0)
        assert s.labels == ("rock", "paper", "scissors")
        assert s.warmup_on_start is True
        assert s.fallback_random is False

    def test_overrides(self, clean_env):
        clean_env.setenv("GESTURE_BACKEND", "LOCAL")
        clean_env.setenv("GESTURE_API_BASE_URL", "http://localhost:9000/")
        clean_env.setenv("GESTURE_MODEL_DIR", "/srv/models/rps")
        clean_env.setenv("GESTURE_LABELS", " Paper, rock ,SCISSORS")
        clean_env.setenv("GESTURE_WARMUP_ON_START", "0")
        clean_env.setenv("FALLBACK_RANDOM", "yes")
        s = Settings.from_env()
        assert s.backend == "local"
        assert s.api_base_url == "http://localhost:9000"
        assert s.model_dir == Path("/srv/models/rps")
        assert s.labels == ("paper", "rock", "scissors")
        assert s.warmup_on_start is False
        assert s.fallback_random is True

    @pytest.mark.parametrize("labels", ["rock,paper,lizard", "rock,rock,paper", "rock,paper"])
    def test_invalid_labels_rejected(self, clean_env, labels):
        clean_env.setenv("GESTURE_LABELS", labels)
        with pytest.raises(ValueError):
            Settings.from_env()
