import os
import sys
from typing import Callable, Optional

import click

from .azure_cli import AzureCli
from .config import DEFAULT_CONFIG_PATH, ConfigError, DeploymentConfig, load_config, load_env_files
from .credentials import default_provider
from .docker_image import DockerCli
from .logging_utils import get_logger, setup_logging
from .orchestrator import DeployOptions, apply_all, check_all, plan_all
from .subprocess_utils import ExternalCommandError


logger = get_logger(__name__)

CONFIG_TEMPLATE = "DeployAzContainerAppConfig.example.json"


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다.",
)
@click.option(
    "--log-file",
    "log_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="로그를 콘솔과 함께 이 파일에도 이어서 기록합니다. (ACA_DEPLOY_LOG_FILE)",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int, log_file: Optional[str]) -> None:
    """Azure Container Apps 빌드/프로비저닝/배포용 CLI"""
    # 하위 명령 옵션의 envvar 가 .env 값을 볼 수 있도록 가장 먼저 로드한다.
    load_env_files(chdir)
    log_file = log_file or os.getenv("ACA_DEPLOY_LOG_FILE") or None
    setup_logging(verbose, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose


def _resolve(base_dir: str, path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.normpath(os.path.join(base_dir, path))


def _deploy_options(func: Callable) -> Callable:
    options = [
        click.option(
            "--config",
            "config_path",
            envvar="ACA_DEPLOY_CONFIG",
            default=DEFAULT_CONFIG_PATH,
            show_default=True,
            help="배포 설정 JSON 파일 경로",
        ),
        click.option(
            "--delete-resource-group/--keep-resource-group",
            "delete_resource_group",
            default=False,
            show_default=True,
            help="배포 전에 리소스 그룹을 삭제합니다. (확인 없이 삭제)",
        ),
        click.option(
            "--rebuild-image/--no-rebuild-image",
            "rebuild_image",
            default=True,
            show_default=True,
            help="컨테이너 이미지를 다시 빌드하고 푸시합니다.",
        ),
        click.option(
            "--dockerfile",
            "dockerfile",
            default="./Dockerfile",
            show_default=True,
            help="docker build 에 사용할 Dockerfile 경로",
        ),
        click.option(
            "--project-path",
            "project_path",
            default=".",
            show_default=True,
            help="docker build 컨텍스트 디렉토리",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load(ctx: click.Context, config_path: str) -> DeploymentConfig:
    base_dir: str = ctx.obj["chdir"]
    try:
        cfg = load_config(_resolve(base_dir, config_path))
    except ConfigError as e:
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)
    logger.debug("Config loaded: %s", cfg)
    return cfg


def _options(ctx: click.Context, delete_resource_group: bool, rebuild_image: bool,
             dockerfile: str, project_path: str) -> DeployOptions:
    base_dir: str = ctx.obj["chdir"]
    return DeployOptions(
        delete_resource_group=delete_resource_group,
        rebuild_image=rebuild_image,
        dockerfile=_resolve(base_dir, dockerfile),
        project_path=_resolve(base_dir, project_path),
    )


@main.command(name="deploy")
@_deploy_options
@click.option(
    "--registry-username",
    "registry_username",
    envvar="ACA_REGISTRY_USERNAME",
    default=None,
    help="앱을 처음 만들 때 사용할 레지스트리 사용자 (비밀번호는 항상 입력받거나 ACA_REGISTRY_PASSWORD 사용)",
)
@click.pass_context
def deploy(
    ctx: click.Context,
    config_path: str,
    delete_resource_group: bool,
    rebuild_image: bool,
    dockerfile: str,
    project_path: str,
    registry_username: Optional[str],
) -> None:
    """이미지 빌드/푸시 후 리소스 그룹, 환경, Container App 을 생성 또는 업데이트"""
    cfg = _load(ctx, config_path)
    opts = _options(ctx, delete_resource_group, rebuild_image, dockerfile, project_path)

    try:
        summary = apply_all(
            cfg,
            opts,
            azure=AzureCli(),
            docker=DockerCli(),
            credentials=default_provider(registry_username),
        )
    except (ExternalCommandError, ValueError) as e:
        logger.exception("배포 중 오류 발생")
        click.echo(f"[ERROR] 배포 실패: {e}", err=True)
        sys.exit(1)

    click.echo(summary)


@main.command()
@_deploy_options
@click.pass_context
def plan(
    ctx: click.Context,
    config_path: str,
    delete_resource_group: bool,
    rebuild_image: bool,
    dockerfile: str,
    project_path: str,
) -> None:
    """현재 설정과 실행될 단계를 ENABLED/SKIPPED 로 출력 (az/docker 호출 없음)"""
    cfg = _load(ctx, config_path)
    opts = _options(ctx, delete_resource_group, rebuild_image, dockerfile, project_path)
    click.echo(plan_all(cfg, opts))


@main.command()
@_deploy_options
@click.option(
    "-a",
    "--all",
    "show_all",
    is_flag=True,
    help="모든 체크 항목의 상세 상태를 출력합니다. (기본은 이슈만 요약)",
)
@click.pass_context
def check(
    ctx: click.Context,
    config_path: str,
    delete_resource_group: bool,
    rebuild_image: bool,
    dockerfile: str,
    project_path: str,
    show_all: bool,
) -> None:
    """
    배포 전에 빌드 입력과 Azure 리소스 상태를 점검한다.
    (실제 리소스 생성/변경은 하지 않는다)
    """
    cfg = _load(ctx, config_path)
    opts = _options(ctx, delete_resource_group, rebuild_image, dockerfile, project_path)

    report, has_issues = check_all(cfg, opts, azure=AzureCli(), show_all=show_all)
    click.echo(report)

    # 크리티컬 이슈가 있으면 exit 1 로 종료하여 CI 등에서 감지 가능하게 한다.
    if has_issues:
        sys.exit(1)


@main.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """
    현재 디렉토리에 DeployAzContainerAppConfig.json 템플릿을 만든다.
    """
    from importlib import resources

    base_dir: str = ctx.obj["chdir"]
    target = _resolve(base_dir, DEFAULT_CONFIG_PATH)

    if os.path.exists(target):
        click.echo(f"{target} 이(가) 이미 존재하여 건너뜀")
        return

    template = resources.files("aca_deploy_kit.examples").joinpath(CONFIG_TEMPLATE)
    with template.open("r", encoding="utf-8") as src, open(target, "w", encoding="utf-8") as dst:
        dst.write(src.read())
    click.echo(f"{target} 템플릿을 생성했습니다. 값을 채운 뒤 `aca-deploy plan` 으로 확인하세요.")
