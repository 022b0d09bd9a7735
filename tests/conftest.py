"""Shared test fixtures."""

import pytest

CONFIG_ENV_VARS = (
    "SERVICE_NAME",
    "MINIO_ACCESS_KEY",
    "MINIO_SECRET_KEY",
    "MINIO_ENDPOINT",
    "AWS_ACCESS_KEY",
    "AWS_SECRET_KEY",
    "AWS_ENDPOINT",
    "ERROR_STATUS_CODES",
)


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch):
    """Keep the developer's shell config out of the tests."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
