"""
PeriodCare Backend - Startup Sequencing Tests
===============================================

What we test:
    ✅ Missing secret → Fatal at validating_env, nothing else built
    ✅ Database failure → Fatal at connecting_db, resources released
    ✅ Unusable DATABASE_URL (unknown dialect) → Fatal at validating_env
    ✅ Happy path → Ready with the app, settings and database
    ✅ run() exits non-zero without ever listening
"""

from unittest.mock import AsyncMock, patch

import pytest

from periodcare import bootstrap
from periodcare.bootstrap import Fatal, Ready, Stage, prepare
from periodcare.config import Settings


class TestPrepare:
    @pytest.mark.asyncio
    async def test_missing_secret_is_fatal_before_app_is_built(self):
        with patch("periodcare.bootstrap.create_app") as create_app:
            result = await prepare(Settings(_env_file=None, clerk_secret_key=""))
        assert isinstance(result, Fatal)
        assert result.stage is Stage.VALIDATING_ENV
        assert result.exit_code == 1
        assert "CLERK_SECRET_KEY" in result.reason
        create_app.assert_not_called()

    @pytest.mark.asyncio
    async def test_unusable_database_url_is_fatal(self, test_settings, fake_verifier, fake_provider):
        settings = test_settings.model_copy(update={"database_url": "mongodb://localhost:27017/periodcare"})
        result = await prepare(settings, session_verifier=fake_verifier, http_client=fake_provider.client)
        assert isinstance(result, Fatal)
        assert result.stage is Stage.VALIDATING_ENV
        assert "DATABASE_URL" in result.reason
        assert fake_provider.client.is_closed

    @pytest.mark.asyncio
    async def test_database_failure_is_fatal(self, test_settings, fake_verifier, fake_provider):
        settings = test_settings.model_copy(
            update={"database_url": "sqlite+aiosqlite:////nonexistent-dir/periodcare/test.db"}
        )
        result = await prepare(settings, session_verifier=fake_verifier, http_client=fake_provider.client)
        assert isinstance(result, Fatal)
        assert result.stage is Stage.CONNECTING_DB
        assert fake_provider.client.is_closed

    @pytest.mark.asyncio
    async def test_ready(self, test_settings, fake_verifier, fake_provider):
        result = await prepare(test_settings, session_verifier=fake_verifier, http_client=fake_provider.client)
        try:
            assert isinstance(result, Ready)
            assert result.settings is test_settings
            assert result.app.state.database is result.database
        finally:
            await result.database.dispose()


class TestRun:
    @pytest.mark.asyncio
    async def test_fatal_exits_without_listening(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("CLERK_SECRET_KEY", raising=False)
        with patch.object(bootstrap, "serve", new=AsyncMock()) as serve:
            assert await bootstrap.run() == 1
        serve.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_failure_exits_without_listening(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_test_not_real")
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:////nonexistent-dir/periodcare/test.db")
        with patch.object(bootstrap, "serve", new=AsyncMock()) as serve:
            assert await bootstrap.run() == 1
        serve.assert_not_awaited()
