import bcrypt
import pytest
from unittest.mock import Mock

from app.config import Settings

TEST_KEY = "test-caller-key"


@pytest.fixture(scope="session")
def key_hash():
    """bcrypt hash of TEST_KEY, with the lowest cost to keep tests fast."""
    return bcrypt.hashpw(TEST_KEY.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest.fixture
def settings(key_hash):
    """Settings for testing, isolated from the environment's .env file."""
    return Settings(
        key_hash=key_hash,
        directus_base_url="https://directus.example.org/",
        _env_file=None,
    )


@pytest.fixture
def caller_key():
    return TEST_KEY


@pytest.fixture
def mock_dispatcher():
    dispatcher = Mock()
    dispatcher.pending = 0
    return dispatcher
