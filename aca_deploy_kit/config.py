from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env", ".env.deploy"]

DEFAULT_CONFIG_PATH = "./DeployAzContainerAppConfig.json"

# JSON 키 -> DeploymentConfig 속성
REQUIRED_KEYS: Dict[str, str] = {
    "region": "region",
    "resourceGroup": "resource_group",
    "containerAppEnv": "container_app_env",
    "containerAppName": "container_app_name",
    "containerImage": "container_image",
    "containerImageWithoutTag": "container_image_without_tag",
}


class ConfigError(ValueError):
    """설정 파일 로드/검증 실패의 공통 부모."""


class ConfigNotFoundError(ConfigError):
    pass


class ConfigParseError(ConfigError):
    pass


class ConfigValidationError(ConfigError):
    def __init__(self, missing: List[str]) -> None:
        self.missing = sorted(set(missing))
        super().__init__("필수 설정 키가 누락되었습니다: " + ", ".join(self.missing))


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _registry_host(image: str) -> Optional[str]:
    # docker 규칙: 첫 path segment 에 '.' / ':' 가 있거나 localhost 이면 레지스트리 호스트
    if "/" not in image:
        return None
    first = image.split("/", 1)[0]
    if "." in first or ":" in first or first == "localhost":
        return first
    return None


@dataclass(frozen=True)
class DeploymentConfig:
    region: str
    resource_group: str
    container_app_env: str
    container_app_name: str
    container_image: str
    container_image_without_tag: str

    # 선택 설정
    registry_server: Optional[str] = None

    @property
    def registry_server_or_default(self) -> str:
        """
        registry set 에 넘길 레지스트리 서버.
        명시값 > 이미지 참조의 호스트 > docker.io 순서.
        """
        if self.registry_server:
            return self.registry_server
        return _registry_host(self.container_image) or "docker.io"

    @property
    def latest_image(self) -> str:
        return f"{self.container_image_without_tag}:latest"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentConfig":
        missing: List[str] = []

        def req(key: str) -> str:
            val = data.get(key)
            if val is None or (isinstance(val, str) and not val.strip()):
                missing.append(key)
                return ""
            return str(val)

        values = {attr: req(key) for key, attr in REQUIRED_KEYS.items()}
        if missing:
            raise ConfigValidationError(missing)

        registry = data.get("registryServer")
        return cls(registry_server=str(registry) if registry else None, **values)


def load_config(path: str = DEFAULT_CONFIG_PATH) -> DeploymentConfig:
    """
    JSON 설정 파일을 읽어 DeploymentConfig 를 만든다.

    - 파일 없음: ConfigNotFoundError
    - JSON 이 아니거나 최상위가 객체가 아님: ConfigParseError
    - 필수 키 누락/빈 값: ConfigValidationError
    """
    if not os.path.isfile(path):
        raise ConfigNotFoundError(f"설정 파일을 찾을 수 없습니다: {path}")

    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"설정 파일이 UTF-8 텍스트가 아닙니다: {path} ({e})") from e
    except json.JSONDecodeError as e:
        raise ConfigParseError(f"설정 파일 JSON 파싱 실패: {path} ({e})") from e

    if not isinstance(data, dict):
        raise ConfigParseError(f"설정 파일의 최상위는 JSON 객체여야 합니다: {path}")

    return DeploymentConfig.from_dict(data)
