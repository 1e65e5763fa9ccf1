"""
credentials
-----------

컨테이너 레지스트리 자격증명(username/password) 공급자.

Container App 을 처음 만들 때 한 번만 요청된다.
- PromptCredentialProvider: 터미널에서 입력받음 (password 는 가림)
- EnvCredentialProvider: ACA_REGISTRY_USERNAME / ACA_REGISTRY_PASSWORD (CI 용)
- StaticCredentialProvider: 고정값 (테스트 용)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Protocol

import click


USERNAME_ENV = "ACA_REGISTRY_USERNAME"
PASSWORD_ENV = "ACA_REGISTRY_PASSWORD"


@dataclass(frozen=True)
class RegistryCredentials:
    username: str
    password: str = field(repr=False)


class CredentialProvider(Protocol):
    def get_credentials(self, server: str) -> RegistryCredentials:
        ...


class PromptCredentialProvider:
    def __init__(self, username: Optional[str] = None) -> None:
        self._username = username

    def get_credentials(self, server: str) -> RegistryCredentials:
        click.echo(f"레지스트리 {server} 자격증명이 필요합니다.", err=True)
        username = self._username or click.prompt("Registry username", err=True)
        password = click.prompt("Registry password", hide_input=True, err=True)
        return RegistryCredentials(username=username, password=password)


class EnvCredentialProvider:
    def get_credentials(self, server: str) -> RegistryCredentials:  # noqa: ARG002
        username = os.getenv(USERNAME_ENV)
        password = os.getenv(PASSWORD_ENV)
        if not username or not password:
            raise ValueError(
                f"{USERNAME_ENV} 와 {PASSWORD_ENV} 환경변수가 모두 필요합니다."
            )
        return RegistryCredentials(username=username, password=password)


class StaticCredentialProvider:
    def __init__(self, username: str, password: str) -> None:
        self._creds = RegistryCredentials(username=username, password=password)
        self.calls = 0

    def get_credentials(self, server: str) -> RegistryCredentials:  # noqa: ARG002
        self.calls += 1
        return self._creds


def default_provider(username: Optional[str] = None) -> CredentialProvider:
    """
    환경변수에 username/password 가 모두 있으면 EnvCredentialProvider,
    아니면 대화형 입력을 사용한다.
    """
    if os.getenv(USERNAME_ENV) and os.getenv(PASSWORD_ENV):
        return EnvCredentialProvider()
    return PromptCredentialProvider(username=username or os.getenv(USERNAME_ENV))
