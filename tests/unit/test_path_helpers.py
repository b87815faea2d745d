"""Unit tests for path management utilities."""

from pathlib import Path

from contract_deployer.paths import get_default_data_dir, get_default_history_path


class TestGetDefaultDataDir:
    """Test the get_default_data_dir function."""

    def test_returns_path_object(self):
        assert isinstance(get_default_data_dir(), Path)

    def test_returns_hidden_dir_in_cwd(self):
        data_dir = get_default_data_dir()
        assert data_dir.name == ".contract-deployer"
        assert data_dir.parent == Path.cwd()

    def test_follows_working_directory(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert get_default_data_dir() == tmp_path / ".contract-deployer"


class TestGetDefaultHistoryPath:
    """Test the get_default_history_path function."""

    def test_default_location(self):
        assert get_default_history_path() == get_default_data_dir() / "history.json"

    def test_custom_root_as_string(self, tmp_path: Path):
        path = get_default_history_path(str(tmp_path / "data"))
        assert path == tmp_path / "data" / "history.json"

    def test_relative_root_is_made_absolute(self):
        path = get_default_history_path("relative/dir")
        assert path.is_absolute()
        assert path.name == "history.json"
