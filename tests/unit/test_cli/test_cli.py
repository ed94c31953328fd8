import pytest
from typer.testing import CliRunner

from volunteer_manager.auth import hash_key
from volunteer_manager.cli import _import_router, app

runner = CliRunner()


def test_hash_key():
    result = runner.invoke(app, ["hash-key", "secret"])

    assert result.exit_code == 0
    assert hash_key("secret") in result.output


def test_init_writes_config(tmp_path):
    result = runner.invoke(app, ["init", "--path", str(tmp_path)])

    assert result.exit_code == 0
    assert (tmp_path / "volunteer-manager.toml").exists()


def test_init_does_not_overwrite(tmp_path):
    (tmp_path / "volunteer-manager.toml").write_text("# mine\n", encoding="utf-8")

    result = runner.invoke(app, ["init", "--path", str(tmp_path)])

    assert result.exit_code == 1
    assert (tmp_path / "volunteer-manager.toml").read_text(encoding="utf-8") == "# mine\n"


def test_routes_lists_builtin_actions():
    result = runner.invoke(app, ["routes"])

    assert result.exit_code == 0
    assert "/api/health" in result.output
    assert "/api/auth/identity" in result.output
    assert "GET, HEAD" in result.output


def test_routes_with_missing_config(tmp_path):
    result = runner.invoke(app, ["routes", "--config", str(tmp_path / "missing.toml")])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_import_router():
    router = _import_router("volunteer_manager.web.api.health:router")

    assert any(route.path == "/health" for route in router.routes)


@pytest.mark.parametrize(
    "target", ["volunteer_manager.web.api.health", "volunteer_manager.config:PortalConfig"]
)
def test_import_router_rejects_invalid_targets(target):
    with pytest.raises(ValueError):
        _import_router(target)
