"""
azure_cli
---------

Azure CLI(az) 호출을 감싸는 모듈.
리소스 그룹, 리소스 프로바이더 등록, Container Apps 환경/앱, 레지스트리 자격증명 설정을 담당한다.
"""

from __future__ import annotations

from .logging_utils import get_logger
from .subprocess_utils import ExternalCommandError, RunResult, run_command


logger = get_logger(__name__)


CONTAINER_APPS_NAMESPACE = "Microsoft.App"

# containerapp create 고정값
TARGET_PORT = 80
INGRESS = "external"
CPU = "0.5"
MEMORY = "1.0Gi"

_NOT_FOUND_MARKERS = ("resourcenotfound", "resourcegroupnotfound", "not found", "could not be found")


def _is_not_found(result: RunResult) -> bool:
    text = (result.stderr or result.stdout).lower()
    return any(m in text for m in _NOT_FOUND_MARKERS)


class AzureCli:
    """
    az CLI 래퍼.

    모든 명령은 동기 실행이며 실패 시 ExternalCommandError 가 올라간다.
    show 계열은 'not found' 만 '없음'으로 해석하고, 그 외 실패는 그대로 실패로 본다.
    """

    def __init__(self, runner=run_command, executable: str = "az") -> None:  # noqa: ANN001
        self._run = runner
        self._exe = executable

    # -----------------------------
    # resource group
    # -----------------------------
    def group_exists(self, name: str) -> bool:
        result = self._run(
            [self._exe, "group", "exists", "--name", name],
            step="group exists",
        )
        return result.stdout.strip().lower() == "true"

    def group_create(self, name: str, location: str) -> None:
        self._run(
            [self._exe, "group", "create", "--name", name, "--location", location, "--output", "none"],
            step="group create",
        )

    def group_delete(self, name: str) -> None:
        # --no-wait 를 주지 않으므로 삭제 완료까지 블록된다.
        self._run(
            [self._exe, "group", "delete", "--name", name, "--yes"],
            step="group delete",
            spinner_message=f"리소스 그룹 삭제 중: {name}",
        )

    # -----------------------------
    # provider
    # -----------------------------
    def provider_register(self, namespace: str = CONTAINER_APPS_NAMESPACE) -> None:
        self._run(
            [self._exe, "provider", "register", "--namespace", namespace, "--wait"],
            step="provider register",
            spinner_message=f"리소스 프로바이더 등록 대기 중: {namespace}",
        )

    # -----------------------------
    # container apps environment
    # -----------------------------
    def _exists(self, cmd: list[str], step: str) -> bool:
        result = self._run(cmd, step=step, check=False)
        if result.ok:
            return True
        if _is_not_found(result):
            return False
        raise ExternalCommandError(
            step,
            cmd,
            f"존재 여부 확인 실패 (exit={result.returncode})",
            returncode=result.returncode,
            detail=(result.stderr or result.stdout).strip(),
        )

    def env_exists(self, name: str, resource_group: str) -> bool:
        return self._exists(
            [self._exe, "containerapp", "env", "show", "--name", name, "--resource-group", resource_group],
            step="containerapp env show",
        )

    def env_create(self, name: str, resource_group: str, location: str) -> None:
        self._run(
            [
                self._exe, "containerapp", "env", "create",
                "--name", name,
                "--resource-group", resource_group,
                "--location", location,
                "--output", "none",
            ],
            step="containerapp env create",
            spinner_message=f"Container Apps 환경 생성 중: {name}",
        )

    # -----------------------------
    # container app
    # -----------------------------
    def app_exists(self, name: str, resource_group: str) -> bool:
        return self._exists(
            [self._exe, "containerapp", "show", "--name", name, "--resource-group", resource_group],
            step="containerapp show",
        )

    def app_create(self, name: str, resource_group: str, environment: str, image: str) -> None:
        self._run(
            [
                self._exe, "containerapp", "create",
                "--name", name,
                "--resource-group", resource_group,
                "--environment", environment,
                "--image", image,
                "--target-port", str(TARGET_PORT),
                "--ingress", INGRESS,
                "--cpu", CPU,
                "--memory", MEMORY,
                "--output", "none",
            ],
            step="containerapp create",
        )

    def app_update(self, name: str, resource_group: str, image: str) -> None:
        self._run(
            [
                self._exe, "containerapp", "update",
                "--name", name,
                "--resource-group", resource_group,
                "--image", image,
                "--output", "none",
            ],
            step="containerapp update",
        )

    def registry_set(self, name: str, resource_group: str, server: str, username: str, password: str) -> None:
        self._run(
            [
                self._exe, "containerapp", "registry", "set",
                "--name", name,
                "--resource-group", resource_group,
                "--server", server,
                "--username", username,
                "--password", password,
                "--output", "none",
            ],
            step="containerapp registry set",
            secrets=[password],
        )
