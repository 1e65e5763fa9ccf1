import json
import os

import pytest

from aca_deploy_kit.config import (
    ConfigNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    DeploymentConfig,
    load_config,
    load_env_files,
)


def _write(tmp_path, content: str):  # noqa: ANN001
    path = tmp_path / "DeployAzContainerAppConfig.json"
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_load_config_reads_all_keys(tmp_path, config_dict: dict) -> None:
    cfg = load_config(_write(tmp_path, json.dumps(config_dict)))

    assert cfg.region == "westeurope"
    assert cfg.resource_group == "rg-test"
    assert cfg.container_app_env == "env-test"
    assert cfg.container_app_name == "app-test"
    assert cfg.container_image == "myregistry.azurecr.io/app:1.2.3"
    assert cfg.container_image_without_tag == "myregistry.azurecr.io/app"
    assert cfg.registry_server_or_default == "myregistry.azurecr.io"
    assert cfg.latest_image == "myregistry.azurecr.io/app:latest"


def test_missing_file_raises_not_found(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(ConfigNotFoundError):
        load_config(str(tmp_path / "nope.json"))


def test_invalid_json_raises_parse_error(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(ConfigParseError):
        load_config(_write(tmp_path, "{ region: westeurope"))


def test_non_object_json_raises_parse_error(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(ConfigParseError):
        load_config(_write(tmp_path, "[1, 2, 3]"))


def test_missing_required_keys_fail_fast(tmp_path, config_dict: dict) -> None:
    del config_dict["containerAppEnv"]
    config_dict["region"] = "  "

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(_write(tmp_path, json.dumps(config_dict)))

    assert excinfo.value.missing == ["containerAppEnv", "region"]
    assert "containerAppEnv" in str(excinfo.value)


def test_config_is_immutable(config_dict: dict) -> None:
    cfg = DeploymentConfig.from_dict(config_dict)
    with pytest.raises(AttributeError):
        cfg.region = "eastus"  # type: ignore[misc]


@pytest.mark.parametrize(
    "image, expected",
    [
        ("myregistry.azurecr.io/app:1", "myregistry.azurecr.io"),
        ("localhost:5000/app:1", "localhost:5000"),
        ("library/nginx:latest", "docker.io"),
        ("nginx", "docker.io"),
    ],
)
def test_registry_server_derived_from_image(config_dict: dict, image: str, expected: str) -> None:
    config_dict["containerImage"] = image
    cfg = DeploymentConfig.from_dict(config_dict)
    assert cfg.registry_server_or_default == expected


def test_explicit_registry_server_wins(config_dict: dict) -> None:
    config_dict["registryServer"] = "ghcr.io"
    cfg = DeploymentConfig.from_dict(config_dict)
    assert cfg.registry_server_or_default == "ghcr.io"


def test_load_env_files_later_file_overrides(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv 로 원래 값을 기록해 두어야 테스트 후 복원된다.
    monkeypatch.setenv("ACA_DEPLOY_CONFIG", "original.json")
    (tmp_path / ".env").write_text("ACA_DEPLOY_CONFIG=a.json\n", encoding="utf-8")
    (tmp_path / ".env.deploy").write_text("ACA_DEPLOY_CONFIG=b.json\n", encoding="utf-8")

    load_env_files(str(tmp_path))

    assert os.environ["ACA_DEPLOY_CONFIG"] == "b.json"


def test_non_utf8_bytes_raise_parse_error(tmp_path) -> None:  # noqa: ANN001
    path = tmp_path / "DeployAzContainerAppConfig.json"
    path.write_bytes(b'{"region": "\xff\xfe"}')

    with pytest.raises(ConfigParseError):
        load_config(str(path))
