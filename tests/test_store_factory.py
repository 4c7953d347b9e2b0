"""Tests for the store adapter factory."""

import pytest
from unittest.mock import patch

from meetgrid.adapters.store_factory import create_local_store, create_remote_store


class TestCreateRemoteStore:
    @patch("meetgrid.adapters.store_factory.settings")
    def test_returns_firebase_store(self, mock_settings):
        mock_settings.REMOTE_PROVIDER = "firebase"
        mock_settings.FIREBASE_DATABASE_URL = "https://demo-rtdb.firebaseio.com"
        mock_settings.FIREBASE_AUTH_TOKEN = "secret"
        mock_settings.REMOTE_TIMEOUT_SECONDS = 2.5
        store = create_remote_store()
        from meetgrid.adapters.firebase_store import FirebaseRestStore
        assert isinstance(store, FirebaseRestStore)
        assert store._timeout == 2.5

    @patch("meetgrid.adapters.store_factory.settings")
    def test_returns_disabled_store(self, mock_settings):
        mock_settings.REMOTE_PROVIDER = "none"
        store = create_remote_store()
        from meetgrid.adapters.firebase_store import DisabledRemoteStore
        assert isinstance(store, DisabledRemoteStore)

    @patch("meetgrid.adapters.store_factory.settings")
    def test_case_insensitive(self, mock_settings):
        mock_settings.REMOTE_PROVIDER = "None"
        from meetgrid.adapters.firebase_store import DisabledRemoteStore
        assert isinstance(create_remote_store(), DisabledRemoteStore)

    @patch("meetgrid.adapters.store_factory.settings")
    def test_unknown_provider_raises(self, mock_settings):
        mock_settings.REMOTE_PROVIDER = "dynamo"
        with pytest.raises(ValueError, match="Unknown REMOTE_PROVIDER"):
            create_remote_store()

    @patch("meetgrid.adapters.store_factory.settings")
    def test_firebase_without_url_raises(self, mock_settings):
        mock_settings.REMOTE_PROVIDER = "firebase"
        mock_settings.FIREBASE_DATABASE_URL = ""
        with pytest.raises(ValueError, match="FIREBASE_DATABASE_URL"):
            create_remote_store()


class TestCreateLocalStore:
    def test_explicit_path(self, tmp_db_path):
        from meetgrid.adapters.sqlite_store import SqliteStore
        store = create_local_store(tmp_db_path)
        assert isinstance(store, SqliteStore)
        assert store._db_path == tmp_db_path

    @patch("meetgrid.adapters.store_factory.settings")
    def test_default_path_from_settings(self, mock_settings, tmp_path):
        mock_settings.LOCAL_DATABASE_PATH = str(tmp_path / "default.db")
        store = create_local_store()
        assert store._db_path == str(tmp_path / "default.db")
