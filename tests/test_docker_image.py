from typing import List

from aca_deploy_kit.config import DeploymentConfig
from aca_deploy_kit.docker_image import DockerCli


def _cfg(image: str = "myregistry.azurecr.io/app:1.2.3") -> DeploymentConfig:
    return DeploymentConfig(
        region="westeurope",
        resource_group="rg-test",
        container_app_env="env-test",
        container_app_name="app-test",
        container_image=image,
        container_image_without_tag="myregistry.azurecr.io/app",
    )


def test_build_and_push_calls_docker_build_then_push() -> None:
    calls: List[list[str]] = []

    def fake_run(cmd: list[str], **kwargs) -> None:  # noqa: ARG001
        calls.append(cmd)

    pushed = DockerCli(runner=fake_run).build_and_push(_cfg(), dockerfile="./Dockerfile", context_dir=".")

    assert pushed == ["myregistry.azurecr.io/app:1.2.3", "myregistry.azurecr.io/app:latest"]
    # docker build 1번 + docker push 2번
    assert len(calls) == 3
    assert calls[0] == [
        "docker", "build", "-f", "./Dockerfile",
        "-t", "myregistry.azurecr.io/app:1.2.3",
        "-t", "myregistry.azurecr.io/app:latest",
        ".",
    ]
    assert calls[1] == ["docker", "push", "myregistry.azurecr.io/app:1.2.3"]
    assert calls[2] == ["docker", "push", "myregistry.azurecr.io/app:latest"]


def test_latest_tag_is_not_duplicated() -> None:
    calls: List[list[str]] = []

    def fake_run(cmd: list[str], **kwargs) -> None:  # noqa: ARG001
        calls.append(cmd)

    pushed = DockerCli(runner=fake_run).build_and_push(
        _cfg("myregistry.azurecr.io/app:latest"), dockerfile="Dockerfile", context_dir="src"
    )

    assert pushed == ["myregistry.azurecr.io/app:latest"]
    assert calls[0][-1] == "src"
    assert calls[0].count("-t") == 1
    assert len(calls) == 2


def test_build_streams_output() -> None:
    seen: list[dict] = []

    def fake_run(cmd: list[str], **kwargs) -> None:  # noqa: ARG001
        seen.append(kwargs)

    DockerCli(runner=fake_run).build(["img:1"], "Dockerfile", ".")

    assert seen[0]["stream_output"] is True
    assert seen[0]["step"] == "docker build"
