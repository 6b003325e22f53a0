"""Tests for the licensegate entry point."""

from unittest.mock import MagicMock, patch

import pytest

from cli_config import ENV_OVERRIDES
from common.errors import AdapterError
from licensegate import main


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for var in ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)


def _adapter_class(code=0):
    adapter = MagicMock()
    adapter.run.return_value = code
    return MagicMock(return_value=adapter)


class TestMain:
    """Exit codes of the CLI."""

    def test_explicit_type(self, tmp_path):
        adapter_cls = _adapter_class(0)
        with patch("licensegate.get_adapter", return_value=adapter_cls) as get_adapter:
            with pytest.raises(SystemExit) as excinfo:
                main(["-t", "npm", "-d", str(tmp_path)])
        assert excinfo.value.code == 0
        get_adapter.assert_called_once_with("npm")
        settings = adapter_cls.call_args[0][0]
        assert settings.project_dir == str(tmp_path)

    def test_detected_type_and_failure_code(self, tmp_path):
        (tmp_path / "pom.xml").write_text("<project/>")
        adapter_cls = _adapter_class(1)
        with patch("licensegate.get_adapter", return_value=adapter_cls) as get_adapter:
            with pytest.raises(SystemExit) as excinfo:
                main(["-d", str(tmp_path)])
        assert excinfo.value.code == 1
        get_adapter.assert_called_once_with("mvn")

    def test_undetectable_project(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main(["-d", str(tmp_path)])
        assert excinfo.value.code == 1

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text("batch_size: 0\n", encoding="utf-8")
        with pytest.raises(SystemExit) as excinfo:
            main(["-t", "npm", "-c", str(path)])
        assert excinfo.value.code == 1

    def test_adapter_error(self, tmp_path):
        adapter_cls = MagicMock(side_effect=AdapterError("boom"))
        with patch("licensegate.get_adapter", return_value=adapter_cls):
            with pytest.raises(SystemExit) as excinfo:
                main(["-t", "yarn", "-d", str(tmp_path)])
        assert excinfo.value.code == 1
