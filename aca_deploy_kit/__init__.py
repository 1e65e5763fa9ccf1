"""
aca_deploy_kit
--------------

Azure Container Apps 배포 CLI 패키지.
docker 이미지 빌드/푸시, 리소스 그룹 / Container Apps 환경 준비,
Container App 생성 또는 이미지 업데이트를 az CLI 로 한 번에 수행하는 것을 목표로 한다.
"""

__all__ = [
    "azure_cli",
    "cli",
    "config",
    "credentials",
    "docker_image",
    "logging_utils",
    "orchestrator",
    "subprocess_utils",
]
