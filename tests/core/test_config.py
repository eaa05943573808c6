"""
Tests for derived settings.
"""

from juno.core.config import Settings


class TestConversationLock:
    """Tests for the pending-marker TTL."""

    def test_outlasts_slowest_model_call(self):
        """The marker lives longer than every model attempt timing out."""
        settings = Settings(OPENAI_TIMEOUT_SECONDS=60.0, OPENAI_MAX_RETRIES=1)
        assert settings.CONVERSATION_LOCK_SECONDS > 2 * 60

    def test_includes_weather_rounds_and_margin(self):
        """Weather lookups and the margin are added on top of the model budget."""
        settings = Settings(
            OPENAI_TIMEOUT_SECONDS=60.0,
            OPENAI_MAX_RETRIES=1,
            WEATHER_TIMEOUT_SECONDS=10.0,
            WEATHER_MAX_RETRIES=2,
            CONVERSATION_LOCK_MARGIN_SECONDS=30,
        )
        assert settings.CONVERSATION_LOCK_SECONDS == 120 + 44 + 30

    def test_grows_with_model_timeout(self):
        """Raising the model timeout raises the lock with it."""
        short = Settings(OPENAI_TIMEOUT_SECONDS=30.0)
        long = Settings(OPENAI_TIMEOUT_SECONDS=300.0)
        assert long.CONVERSATION_LOCK_SECONDS - short.CONVERSATION_LOCK_SECONDS == (300 - 30) * (
            short.OPENAI_MAX_RETRIES + 1
        )
