"""
docker_image
------------

로컬 docker 로 컨테이너 이미지를 빌드하고 레지스트리에 푸시하는 모듈.
"""

from __future__ import annotations

from .config import DeploymentConfig
from .logging_utils import get_logger
from .subprocess_utils import run_command


logger = get_logger(__name__)


class DockerCli:
    """
    docker build / push 래퍼.

    runner 는 run_command 와 같은 시그니처의 callable 이며,
    테스트에서는 명령만 기록하는 가짜로 바꿔 끼운다.
    """

    def __init__(self, runner=run_command, executable: str = "docker") -> None:  # noqa: ANN001
        self._run = runner
        self._exe = executable

    def build(self, tags: list[str], dockerfile: str, context_dir: str) -> None:
        cmd = [self._exe, "build", "-f", dockerfile]
        for tag in tags:
            cmd += ["-t", tag]
        cmd.append(context_dir)
        self._run(cmd, step="docker build", stream_output=True)

    def push(self, image: str) -> None:
        self._run([self._exe, "push", image], step="docker push", stream_output=True)

    def build_and_push(self, cfg: DeploymentConfig, dockerfile: str, context_dir: str = ".") -> list[str]:
        """
        containerImage 와 containerImageWithoutTag:latest 두 태그로 빌드한 뒤 둘 다 푸시한다.
        푸시한 이미지 참조 목록을 반환한다.
        """
        tags = [cfg.container_image]
        if cfg.latest_image != cfg.container_image:
            tags.append(cfg.latest_image)

        logger.info("이미지 빌드: dockerfile=%s context=%s tags=%s", dockerfile, context_dir, tags)
        self.build(tags, dockerfile, context_dir)

        for tag in tags:
            self.push(tag)

        logger.info("이미지 빌드/푸시 완료: %s", ", ".join(tags))
        return tags
