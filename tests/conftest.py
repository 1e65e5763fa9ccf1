"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 aca_deploy_kit 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.

az/docker 대신 쓰는 가짜 백엔드도 여기서 제공한다.
"""

from __future__ import annotations

import os
import sys
from typing import List, Set, Tuple

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


class FakeAzure:
    """
    AzureCli 와 같은 메서드를 가진 가짜.
    생성된 리소스를 기억하므로 두 번째 실행에서는 '이미 존재' 로 보인다.
    """

    def __init__(self, groups=(), envs=(), apps=()) -> None:  # noqa: ANN001
        self.groups: Set[str] = set(groups)
        self.envs: Set[Tuple[str, str]] = set(envs)
        self.apps: Set[Tuple[str, str]] = set(apps)
        self.calls: List[tuple] = []
        self.fail_on: str | None = None

    def _record(self, name: str, *args) -> None:  # noqa: ANN002
        self.calls.append((name, *args))
        if self.fail_on == name:
            from aca_deploy_kit.subprocess_utils import ExternalCommandError

            raise ExternalCommandError(name, ["az", name], "boom", returncode=1)

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def count(self, name: str) -> int:
        return self.names().count(name)

    def group_exists(self, name: str) -> bool:
        self._record("group_exists", name)
        return name in self.groups

    def group_create(self, name: str, location: str) -> None:
        self._record("group_create", name, location)
        self.groups.add(name)

    def group_delete(self, name: str) -> None:
        self._record("group_delete", name)
        self.groups.discard(name)
        self.envs = {e for e in self.envs if e[1] != name}
        self.apps = {a for a in self.apps if a[1] != name}

    def provider_register(self, namespace: str = "Microsoft.App") -> None:
        self._record("provider_register", namespace)

    def env_exists(self, name: str, resource_group: str) -> bool:
        self._record("env_exists", name, resource_group)
        return (name, resource_group) in self.envs

    def env_create(self, name: str, resource_group: str, location: str) -> None:
        self._record("env_create", name, resource_group, location)
        self.envs.add((name, resource_group))

    def app_exists(self, name: str, resource_group: str) -> bool:
        self._record("app_exists", name, resource_group)
        return (name, resource_group) in self.apps

    def app_create(self, name: str, resource_group: str, environment: str, image: str) -> None:
        self._record("app_create", name, resource_group, environment, image)
        self.apps.add((name, resource_group))

    def app_update(self, name: str, resource_group: str, image: str) -> None:
        self._record("app_update", name, resource_group, image)

    def registry_set(self, name: str, resource_group: str, server: str, username: str, password: str) -> None:
        self._record("registry_set", name, resource_group, server, username, password)


class FakeDocker:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def build_and_push(self, cfg, dockerfile: str, context_dir: str = ".") -> list[str]:  # noqa: ANN001
        self.calls.append(("build_and_push", cfg.container_image, dockerfile, context_dir))
        return [cfg.container_image]


@pytest.fixture
def fake_azure() -> FakeAzure:
    return FakeAzure()


@pytest.fixture
def fake_docker() -> FakeDocker:
    return FakeDocker()


@pytest.fixture
def config_dict() -> dict:
    return {
        "region": "westeurope",
        "resourceGroup": "rg-test",
        "containerAppEnv": "env-test",
        "containerAppName": "app-test",
        "containerImage": "myregistry.azurecr.io/app:1.2.3",
        "containerImageWithoutTag": "myregistry.azurecr.io/app",
    }


@pytest.fixture
def make_azure():  # noqa: ANN201
    """이미 존재하는 리소스를 지정해서 FakeAzure 를 만든다."""
    return FakeAzure
