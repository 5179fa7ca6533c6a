# photo_enhancement/core/test_config.py
import pytest

from photo_enhancement.core import config as app_config
from photo_enhancement.core.config import EnhancementSettings


def _settings(**overrides):
    values = dict(
        storage_backend="local", openai_api_key="key", openai_image_model="gpt-4.1",
        enhancement_prompt="enhance", ai_timeout_seconds=45, request_budget_seconds=60,
    )
    values.update(overrides)
    return EnhancementSettings(**values)


def test_valid_settings():
    _settings().validate()


@pytest.mark.parametrize("overrides, fragment", [
    ({"openai_api_key": None}, "OPENAI_API_KEY"),
    ({"storage_backend": "s3"}, "STORAGE_BACKEND"),
    ({"ai_timeout_seconds": 0}, "AI_TIMEOUT_SECONDS"),
    ({"ai_timeout_seconds": 60}, "REQUEST_BUDGET_SECONDS"),
    ({"retry_max_attempts": 0}, "RETRY_MAX_ATTEMPTS"),
])
def test_invalid_settings_fail_fast(overrides, fragment):
    with pytest.raises(ValueError) as exc_info:
        _settings(**overrides).validate()
    assert fragment in str(exc_info.value)


def test_from_app_config_reads_testing_config():
    testing = app_config.config_by_name["testing"]
    config = {key: getattr(testing, key) for key in dir(testing) if key.isupper()}

    settings = EnhancementSettings.from_app_config(config)

    assert settings.storage_backend == "local"
    assert settings.ai_timeout_seconds == 2.0
    assert settings.internal_service_token == "test-internal-token"
    settings.validate()
