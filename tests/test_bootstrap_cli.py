"""Tests for the bootstrap sequence and the mongorest-config CLI."""
import pytest

from mongorest_config.cli.main import main, mask_value
from mongorest_config.domains import gcp_client
from mongorest_config.domains.config_loader import ConfigError
from mongorest_config.domains.models import SecretResolutionError
from mongorest_config.workflows.bootstrap import bootstrap_environment
from mongorest_config.workflows.property_injector import SECRET_PROPERTY_SOURCE_NAME

from .conftest import FakeSecretManagerClient, secret_path

ENV_VARS = (
    "SPRING_PROFILES_ACTIVE",
    "SPRING_DATA_MONGODB_URI",
    "MONGODB_URI",
    "GCP_CLOUDRUN_SECRET_ENV_VAR",
    "GCP_SECRETMANAGER_PROJECT_ID",
    "GCP_PROJECT_ID",
    "GCP_SECRETMANAGER_ENABLED",
    "MONGOREST_CONFIG_DIR",
    "backend-dev-secret",
    "backend-prod-secret",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the resolver reads from the real environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def config_dir(tmp_path):
    """Config directory: local by default, remote secrets enabled for prod."""
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "application.yml").write_text(
        "spring:\n"
        "  profiles:\n"
        "    active: local\n"
        "gcp:\n"
        "  secretmanager:\n"
        "    enabled: false\n"
        "    project-id: my-project\n"
    )
    (directory / "application-prod.yml").write_text("gcp:\n  secretmanager:\n    enabled: true\n")
    return directory


@pytest.fixture
def fake_secret_manager(monkeypatch):
    """Replace the real SecretManagerServiceClient with a fake."""
    fake = FakeSecretManagerClient()
    monkeypatch.setattr(gcp_client.secretmanager, "SecretManagerServiceClient", lambda: fake)
    return fake


class TestBootstrapEnvironment:
    """Test suite for bootstrap_environment."""

    def test_local_profile_with_direct_uri(self, config_dir, fake_secret_manager):
        """Test local startup installs only the env var URI."""
        environment = bootstrap_environment(
            environ={"MONGODB_URI": "mongodb://local-env"},
            config_dir=config_dir,
        )

        assert environment.active_profiles == ["local"]
        assert environment.get_property("spring.data.mongodb.uri") == "mongodb://local-env"
        assert fake_secret_manager.requests == []

    def test_prod_profile_loads_remote_secret(self, config_dir, fake_secret_manager):
        """Test the prod overlay enables the remote tier and its secret is installed."""
        fake_secret_manager.payloads[secret_path("my-project", "prod")] = (
            b"spring.data.mongodb.uri=mongodb://prod\napp.api-key=abc\n"
        )

        environment = bootstrap_environment(
            argv=["--spring.profiles.active=prod"],
            environ={},
            config_dir=config_dir,
        )

        assert environment.source_names()[:2] == ["commandLineArgs", SECRET_PROPERTY_SOURCE_NAME]
        assert environment.get_property("app.api-key") == "abc"
        assert fake_secret_manager.closed

    def test_prod_missing_secret_aborts(self, config_dir, fake_secret_manager):
        """Test a missing prod secret propagates out of the bootstrap."""
        with pytest.raises(SecretResolutionError) as exc_info:
            bootstrap_environment(environ={"SPRING_PROFILES_ACTIVE": "prod"}, config_dir=config_dir)

        assert exc_info.value.secret_id == "webflux-mongodb-rest-prod"

    def test_nothing_resolved_leaves_static_config(self, config_dir, fake_secret_manager):
        """Test no secret source is installed when no tier yields properties."""
        environment = bootstrap_environment(environ={}, config_dir=config_dir)

        assert environment.get_source(SECRET_PROPERTY_SOURCE_NAME) is None
        assert environment.get_property("gcp.secretmanager.project-id") == "my-project"

    def test_invalid_config_file(self, tmp_path):
        """Test a broken application.yml stops the bootstrap."""
        (tmp_path / "application.yml").write_text("spring: [unclosed")

        with pytest.raises(ConfigError):
            bootstrap_environment(environ={}, config_dir=tmp_path)


class TestCLICommands:
    """Test suite for CLI commands."""

    def test_version(self, capsys):
        """Test version prints the package name."""
        main(["version"])
        assert "mongorest-config" in capsys.readouterr().out

    def test_no_command_is_usage_error(self, capsys):
        """Test running without a command exits with code 2."""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_profile_command(self, clean_env, config_dir, capsys):
        """Test profile prints the declared profile, overridable with --profile."""
        main(["profile", "--config-dir", str(config_dir)])
        assert capsys.readouterr().out.strip() == "local"

        main(["profile", "--config-dir", str(config_dir), "--profile", "uat"])
        assert capsys.readouterr().out.strip() == "uat"

    def test_invalid_profile_rejected(self, clean_env, config_dir):
        """Test a profile that can't form a secret id is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main(["resolve", "--config-dir", str(config_dir), "--profile", "dev.eu"])
        assert exc_info.value.code == 2

    def test_resolve_masks_values(self, clean_env, config_dir, capsys):
        """Test resolve lists keys with masked values unless --reveal is given."""
        clean_env.setenv("MONGODB_URI", "mongodb://secret-host")

        main(["resolve", "--config-dir", str(config_dir)])
        out = capsys.readouterr().out
        assert "spring.data.mongodb.uri=" in out
        assert "secret-host" not in out

        main(["resolve", "--config-dir", str(config_dir), "--reveal"])
        assert "mongodb://secret-host" in capsys.readouterr().out

    def test_resolve_nothing(self, clean_env, config_dir, capsys):
        """Test resolve reports when no secret properties were installed."""
        main(["resolve", "--config-dir", str(config_dir)])
        assert "No properties resolved" in capsys.readouterr().out

    def test_resolve_fatal_exits_1(self, clean_env, config_dir, fake_secret_manager, capsys):
        """Test a missing secret gives one diagnostic and exit code 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["resolve", "--config-dir", str(config_dir), "--profile", "prod"])

        assert exc_info.value.code == 1
        assert "webflux-mongodb-rest-prod" in capsys.readouterr().err

    def test_get_quiet(self, clean_env, config_dir, capsys):
        """Test get -q prints only the value, --set overrides apply."""
        main(["get", "app.name", "-q", "--config-dir", str(config_dir), "--set", "app.name=rewards"])
        assert capsys.readouterr().out.strip() == "rewards"

    def test_get_missing_key(self, clean_env, config_dir, capsys):
        """Test get exits 1 for an unset property."""
        with pytest.raises(SystemExit) as exc_info:
            main(["get", "no.such.key", "--config-dir", str(config_dir)])
        assert exc_info.value.code == 1

    def test_mask_value(self):
        """Test masking keeps only the length."""
        assert mask_value("abcd") == "<4 chars>"
