# orders_core/tests/test_settings.py

import importlib

import pytest

from labtrack import settings as project_settings


@pytest.fixture
def load_settings(monkeypatch):
    def _load(**env):
        for key in ("DB_ENGINE", "DJANGO_ENV"):
            monkeypatch.delenv(key, raising=False)
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(project_settings)

    yield _load

    monkeypatch.undo()
    importlib.reload(project_settings)


def test_postgresql_is_the_default_engine(load_settings):
    module = load_settings()
    assert module.DATABASES["default"]["ENGINE"] == "django.db.backends.postgresql"


@pytest.mark.parametrize("env", [{"DJANGO_ENV": "ci"}, {"DJANGO_ENV": "test"}, {"DB_ENGINE": "sqlite"}])
def test_sqlite_is_opt_in(load_settings, env):
    module = load_settings(**env)
    assert module.DATABASES["default"]["ENGINE"] == "django.db.backends.sqlite3"
