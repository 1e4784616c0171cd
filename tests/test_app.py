from terminaut.app import create_gateway, create_launcher
from terminaut.config_loader import CORE_BIN_ENV, default_config
from terminaut.core_client import ProcessGateway
from terminaut.fallback import FallbackGateway


def test_env_override_selects_core_gateway(fake_core):
    gateway = create_gateway(default_config(), environ={CORE_BIN_ENV: str(fake_core.path)})

    assert isinstance(gateway, ProcessGateway)
    assert gateway.executable == fake_core.path


def test_missing_binary_selects_fallback(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = default_config()
    config["core"]["binary"] = str(tmp_path / "missing")

    gateway = create_gateway(config, environ={CORE_BIN_ENV: str(tmp_path / "also-missing")})

    assert isinstance(gateway, FallbackGateway)


def test_force_fallback_skips_discovery(fake_core):
    gateway = create_gateway(
        default_config(), environ={CORE_BIN_ENV: str(fake_core.path)}, force_fallback=True
    )

    assert gateway.kind == "fallback"


def test_old_core_is_replaced_by_fallback(fake_core):
    fake_core.respond(stdout="0.1.0\n")
    config = default_config()
    config["core"]["min_version"] = "0.2.0"

    gateway = create_gateway(config, environ={CORE_BIN_ENV: str(fake_core.path)})

    assert isinstance(gateway, FallbackGateway)


def test_failing_version_call_is_replaced_by_fallback(fake_core):
    fake_core.respond(stderr="unknown subcommand", exit_code=2)
    config = default_config()
    config["core"]["min_version"] = "0.2.0"

    gateway = create_gateway(config, environ={CORE_BIN_ENV: str(fake_core.path)})

    assert isinstance(gateway, FallbackGateway)


def test_compatible_core_is_kept(fake_core):
    fake_core.respond(stdout="0.4.2\n")
    config = default_config()
    config["core"]["min_version"] = "0.2.0"
    config["core"]["timeout"] = 5

    gateway = create_gateway(config, environ={CORE_BIN_ENV: str(fake_core.path)})

    assert isinstance(gateway, ProcessGateway)
    assert gateway.timeout == 5.0


def test_create_launcher_reads_config():
    config = default_config()
    config["launcher"]["interpreter"] = "/opt/bin/osascript"

    launcher = create_launcher(config)

    assert launcher.interpreter == "/opt/bin/osascript"
    assert launcher.timeout is None
