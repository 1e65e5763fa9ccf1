from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from .azure_cli import CONTAINER_APPS_NAMESPACE, AzureCli
from .config import DeploymentConfig
from .credentials import CredentialProvider
from .docker_image import DockerCli
from .logging_utils import get_logger
from .subprocess_utils import ExternalCommandError


logger = get_logger(__name__)

# 실행 순서 그대로
ALL_STEPS: List[str] = [
    "build",
    "delete_group",
    "resource_group",
    "provider",
    "environment",
    "app",
]


@dataclass(frozen=True)
class DeployOptions:
    delete_resource_group: bool = False
    rebuild_image: bool = True
    dockerfile: str = "./Dockerfile"
    project_path: str = "."


def _step_enabled(name: str, opts: DeployOptions) -> bool:
    if name == "build":
        return opts.rebuild_image
    if name == "delete_group":
        return opts.delete_resource_group
    return name in ALL_STEPS


# -----------------------------
# 단계별 함수
# -----------------------------
def build_and_push_image(cfg: DeploymentConfig, opts: DeployOptions, docker: DockerCli,
                         log: logging.Logger = logger) -> list[str]:
    log.info("컨테이너 이미지 재빌드: %s", cfg.container_image)
    return docker.build_and_push(cfg, dockerfile=opts.dockerfile, context_dir=opts.project_path)


def delete_resource_group(cfg: DeploymentConfig, azure: AzureCli,
                          log: logging.Logger = logger) -> None:
    """
    리소스 그룹을 확인 없이 삭제하고 완료될 때까지 기다린다.
    그룹이 없어서 az 가 실패하면 그대로 실패로 올린다.
    """
    log.warning("리소스 그룹과 그 안의 모든 리소스를 삭제합니다: %s", cfg.resource_group)
    azure.group_delete(cfg.resource_group)
    log.info("리소스 그룹 삭제 완료: %s", cfg.resource_group)


def ensure_resource_group(cfg: DeploymentConfig, azure: AzureCli,
                          log: logging.Logger = logger) -> bool:
    """리소스 그룹이 없으면 만든다. 새로 만들었으면 True."""
    if azure.group_exists(cfg.resource_group):
        log.info("리소스 그룹이 이미 존재합니다: %s", cfg.resource_group)
        return False
    log.info("리소스 그룹 생성: %s (location=%s)", cfg.resource_group, cfg.region)
    azure.group_create(cfg.resource_group, cfg.region)
    return True


def register_provider(azure: AzureCli, log: logging.Logger = logger,
                      namespace: str = CONTAINER_APPS_NAMESPACE) -> None:
    log.info("리소스 프로바이더 등록 (완료까지 대기): %s", namespace)
    azure.provider_register(namespace)
    log.info("리소스 프로바이더 등록 완료: %s", namespace)


def ensure_environment(cfg: DeploymentConfig, azure: AzureCli,
                       log: logging.Logger = logger) -> bool:
    if azure.env_exists(cfg.container_app_env, cfg.resource_group):
        log.info("Container Apps 환경이 이미 존재합니다: %s", cfg.container_app_env)
        return False
    log.info("Container Apps 환경 생성: %s", cfg.container_app_env)
    azure.env_create(cfg.container_app_env, cfg.resource_group, cfg.region)
    return True


def ensure_container_app(cfg: DeploymentConfig, azure: AzureCli, credentials: CredentialProvider,
                         log: logging.Logger = logger) -> str:
    """
    Container App 이 없으면 레지스트리 자격증명을 받아 생성 + registry set,
    있으면 이미지만 업데이트한다.

    Returns:
        "created" 또는 "updated"
    """
    name = cfg.container_app_name
    rg = cfg.resource_group

    if azure.app_exists(name, rg):
        log.info("Container App 이미지 업데이트: %s -> %s", name, cfg.container_image)
        azure.app_update(name, rg, cfg.container_image)
        return "updated"

    server = cfg.registry_server_or_default
    creds = credentials.get_credentials(server)

    log.info("Container App 생성: %s (env=%s, image=%s)", name, cfg.container_app_env, cfg.container_image)
    azure.app_create(name, rg, cfg.container_app_env, cfg.container_image)

    log.info("레지스트리 자격증명 설정: %s (server=%s, user=%s)", name, server, creds.username)
    try:
        azure.registry_set(name, rg, server, creds.username, creds.password)
    finally:
        del creds
    return "created"


# -----------------------------
# plan / apply / check
# -----------------------------
def plan_all(cfg: DeploymentConfig, opts: DeployOptions) -> str:
    """
    현재 설정과 실행될 단계를 요약 텍스트로 리턴한다. az/docker 호출은 하지 않는다.
    """
    lines: List[str] = []
    lines.append("# Deploy plan")
    lines.append(f"- region: {cfg.region}")
    lines.append(f"- resource_group: {cfg.resource_group}")
    lines.append("")

    lines.append("## Config summary")
    lines.append(f"- container_app_env: {cfg.container_app_env}")
    lines.append(f"- container_app_name: {cfg.container_app_name}")
    lines.append(f"- container_image: {cfg.container_image}")
    lines.append(f"- container_image_without_tag: {cfg.container_image_without_tag}")
    lines.append(f"- registry_server: {cfg.registry_server_or_default}")
    lines.append(f"- rebuild_image: {opts.rebuild_image}")
    lines.append(f"- delete_resource_group: {opts.delete_resource_group}")
    lines.append(f"- dockerfile: {opts.dockerfile}")
    lines.append(f"- project_path: {opts.project_path}")
    lines.append("")

    lines.append("## Steps")
    for name in ALL_STEPS:
        status = "ENABLED" if _step_enabled(name, opts) else "SKIPPED"
        lines.append(f"- {name}: {status}")

    return "\n".join(lines)


def apply_all(
    cfg: DeploymentConfig,
    opts: DeployOptions,
    *,
    azure: AzureCli,
    docker: DockerCli,
    credentials: CredentialProvider,
    log: Optional[logging.Logger] = None,
) -> str:
    """
    단계를 순서대로 실행한다.

    단계끼리 의존하므로 하나라도 실패하면(ExternalCommandError) 나머지는 실행하지 않고
    예외를 그대로 올린다. 롤백/재시도는 하지 않는다.

    Returns:
        사람이 읽기 좋은 텍스트 요약
    """
    log = log or logger
    executed: List[str] = []
    skipped: List[str] = []
    created: List[str] = []
    app_action = ""

    log.info("배포 시작: app=%s rg=%s", cfg.container_app_name, cfg.resource_group)

    for name in ALL_STEPS:
        if not _step_enabled(name, opts):
            skipped.append(name)
            continue

        log.info("단계 실행: %s", name)
        try:
            if name == "build":
                build_and_push_image(cfg, opts, docker, log)
            elif name == "delete_group":
                delete_resource_group(cfg, azure, log)
            elif name == "resource_group":
                if ensure_resource_group(cfg, azure, log):
                    created.append(f"resource_group/{cfg.resource_group}")
            elif name == "provider":
                register_provider(azure, log)
            elif name == "environment":
                if ensure_environment(cfg, azure, log):
                    created.append(f"environment/{cfg.container_app_env}")
            elif name == "app":
                app_action = ensure_container_app(cfg, azure, credentials, log)
                if app_action == "created":
                    created.append(f"app/{cfg.container_app_name}")
        except ExternalCommandError:
            log.error("단계 실행 실패, 남은 단계를 중단합니다: %s", name)
            raise

        executed.append(name)

    log.info("배포 완료: %s", cfg.container_app_name)

    lines: List[str] = []
    lines.append("# Deploy summary")
    lines.append(f"- resource_group: {cfg.resource_group}")
    lines.append(f"- app: {cfg.container_app_name}")
    lines.append(f"- image: {cfg.container_image}")
    lines.append(f"- app_action: {app_action}")
    lines.append("")

    for title, items in (
        ("Executed steps", executed),
        ("Skipped steps", skipped),
        ("Created resources", created),
    ):
        lines.append(f"## {title}")
        if items:
            for s in items:
                lines.append(f"- {s}")
        else:
            lines.append("- (none)")
        lines.append("")

    return "\n".join(lines).rstrip()


def check_all(
    cfg: DeploymentConfig,
    opts: DeployOptions,
    *,
    azure: AzureCli,
    show_all: bool = False,
) -> tuple[str, bool]:
    """
    리소스를 만들거나 바꾸지 않고 배포 전 상태를 점검한다.

    Returns:
        summary: 사람이 읽기 좋은 텍스트 요약
        has_issues: 크리티컬 이슈(빌드 파일 없음, az 조회 실패 등)가 있는지 여부
    """
    lines: List[str] = []
    critical: List[str] = []
    warnings: List[str] = []
    infos: List[str] = []

    lines.append("# Deploy pre-check")
    lines.append(f"- resource_group: {cfg.resource_group}")
    lines.append(f"- app: {cfg.container_app_name}")
    lines.append("")

    # 1) 로컬 빌드 입력
    if opts.rebuild_image:
        if os.path.isfile(opts.dockerfile):
            infos.append(f"Dockerfile: 존재함 ({opts.dockerfile})")
        else:
            critical.append(f"Dockerfile: 없음 ({opts.dockerfile})")
        if os.path.isdir(opts.project_path):
            infos.append(f"Project path: 존재함 ({opts.project_path})")
        else:
            critical.append(f"Project path: 없음 ({opts.project_path})")
    else:
        infos.append("Build: rebuild_image=false (체크 건너뜀)")

    # 2) Azure 리소스. 그룹이 없으면 하위 리소스 조회는 의미가 없다.
    try:
        if not azure.group_exists(cfg.resource_group):
            warnings.append(f"Resource group: 없음 (생성 예정) ({cfg.resource_group})")
            warnings.append(f"Environment: 없음 (생성 예정) ({cfg.container_app_env})")
            warnings.append(f"App: 없음 (생성 예정, 자격증명 입력 필요) ({cfg.container_app_name})")
        else:
            infos.append(f"Resource group: 존재함 ({cfg.resource_group})")
            if azure.env_exists(cfg.container_app_env, cfg.resource_group):
                infos.append(f"Environment: 존재함 ({cfg.container_app_env})")
            else:
                warnings.append(f"Environment: 없음 (생성 예정) ({cfg.container_app_env})")
            if azure.app_exists(cfg.container_app_name, cfg.resource_group):
                infos.append(f"App: 존재함 (이미지 업데이트 예정) ({cfg.container_app_name})")
            else:
                warnings.append(f"App: 없음 (생성 예정, 자격증명 입력 필요) ({cfg.container_app_name})")
    except ExternalCommandError as e:
        critical.append(f"Azure: 상태 조회 실패: {e}")

    if opts.delete_resource_group:
        warnings.append(f"Resource group: 삭제 후 재생성 예정 ({cfg.resource_group})")

    if show_all:
        lines.append("## Status")
        for i in infos + warnings + critical:
            lines.append(f"- {i}")
        lines.append("")

    lines.append("## Summary")
    if critical:
        lines.append("- 상태: 크리티컬 이슈가 있습니다. 배포 전 반드시 해결해야 합니다.")
    elif warnings:
        lines.append("- 상태: 경고만 있습니다. 배포 시 일부 리소스가 새로 생성됩니다.")
    else:
        lines.append("- 상태: 주요 이슈 없음 (배포 가능 상태로 보입니다)")

    if critical:
        lines.append("")
        lines.append("### Critical issues")
        for i in critical:
            lines.append(f"- {i}")

    if warnings:
        lines.append("")
        lines.append("### Warnings")
        for i in warnings:
            lines.append(f"- {i}")

    if not show_all:
        lines.append("")
        lines.append("자세한 상태를 보려면 `aca-deploy check -a` 를 실행하세요.")

    return "\n".join(lines), bool(critical)
