import pytest


@pytest.fixture(autouse=True)
def _plain_http_test_settings(settings):
    # The test client talks plain http to "testserver"
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False
    settings.SECURE_HSTS_SECONDS = 0
