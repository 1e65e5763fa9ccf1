from __future__ import annotations

import os
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from textwrap import shorten
from typing import Callable, Iterable, Mapping, Sequence

from .logging_utils import get_logger


logger = get_logger(__name__)


REDACTED = "***"

_BRAILLE_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]
_ASCII_FRAMES = ["|", "/", "-", "\\"]


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ExternalCommandError(RuntimeError):
    """
    외부 명령(az/docker) 실패.

    어느 단계에서 실패했는지(step)만 다르고 종류는 모두 같다.
    cmd 는 이미 비밀값이 마스킹된 형태로 보관한다.
    """

    def __init__(
        self,
        step: str,
        cmd: Sequence[str],
        message: str,
        *,
        returncode: int | None = None,
        detail: str = "",
    ) -> None:
        self.step = step
        self.cmd = list(cmd)
        self.returncode = returncode
        self.detail = detail
        text = f"[{step}] {message}"
        if detail:
            text += "\n" + detail
        super().__init__(text)


def redact(text: str, secrets: Iterable[str]) -> str:
    for s in secrets:
        if s:
            text = text.replace(s, REDACTED)
    return text


def redact_cmd(cmd: Sequence[str], secrets: Iterable[str]) -> list[str]:
    secrets = [s for s in secrets if s]
    return [redact(part, secrets) for part in cmd]


def _is_tty(stream) -> bool:  # noqa: ANN001
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _env_show_progress() -> bool | None:
    raw = os.getenv("CLI_SHOW_PROGRESS")
    if raw is None:
        return None
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _format_elapsed(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:0.1f}s"
    minutes = int(seconds // 60)
    sec = int(seconds % 60)
    return f"{minutes}m{sec:02d}s"


class _IdleProgressIndicator:
    """
    '무출력(idle)' 구간에서만 stderr 한 줄에 스피너 + 메시지 + 경과시간을 그린다.

    provider register --wait, group delete 처럼 몇 분씩 조용히 도는 명령에서
    멈춘 것처럼 보이지 않게 하는 용도.
    """

    def __init__(
        self,
        message: str,
        *,
        stream=None,  # noqa: ANN001
        style: str = "braille",
        interval: float = 0.12,
        idle_seconds: float = 2.0,
    ) -> None:
        self._message = message
        self._stream = stream if stream is not None else sys.stderr
        self._frames = _ASCII_FRAMES if style == "ascii" else _BRAILLE_FRAMES
        self._interval = max(float(interval), 0.02)
        self._idle_seconds = max(float(idle_seconds), 0.0)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_len = 0
        self._lock = threading.Lock()
        self._last_activity = time.monotonic()

    def touch(self) -> None:
        with self._lock:
            self._last_activity = time.monotonic()
        self.clear()

    def _render(self, idx: int, elapsed: float) -> None:
        frame = self._frames[idx % len(self._frames)]
        text = f"{frame} {self._message}  {_format_elapsed(elapsed)}"
        self._last_len = max(self._last_len, len(text))
        self._stream.write("\r" + text)
        self._stream.flush()

    def clear(self) -> None:
        if self._last_len <= 0:
            return
        self._stream.write("\r" + (" " * self._last_len) + "\r")
        self._stream.flush()
        self._last_len = 0

    def start(self) -> None:
        if self._thread is not None:
            return
        started = time.monotonic()

        def _run() -> None:
            idx = 0
            while not self._stop.is_set():
                with self._lock:
                    idle = time.monotonic() - self._last_activity
                if idle < self._idle_seconds:
                    time.sleep(min(self._interval, max(self._idle_seconds - idle, 0.02)))
                    continue
                self._render(idx, time.monotonic() - started)
                idx += 1
                time.sleep(self._interval)

        self._thread = threading.Thread(target=_run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        self.clear()


def run_command(
    cmd: Sequence[str],
    *,
    step: str = "command",
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    stream_output: bool = False,
    check: bool = True,
    secrets: Iterable[str] = (),
    spinner_message: str | None = None,
    show_progress: bool | None = None,
    progress_idle_seconds: float = 2.0,
    progress_style: str = "braille",
    progress_interval: float = 0.12,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    - stream_output=False: stdout/stderr 캡처, 실패 시 요약 포함
    - stream_output=True : stdout/stderr 를 합쳐 실시간으로 터미널에 흘린다 (docker build 등)
    - check=False        : 실패해도 예외 없이 RunResult 를 돌려준다 (show 계열 존재 확인용)

    secrets 로 넘긴 값은 로그와 예외 메시지에서 *** 로 가려진다.
    기본 timeout 은 없다 (provider register --wait 는 끝날 때까지 기다린다).
    """
    secrets = [s for s in secrets if s]
    shown = " ".join(redact_cmd(cmd, secrets))
    logger.info("명령 실행: %s", shown)

    effective_show = show_progress if show_progress is not None else _env_show_progress()
    if effective_show is None:
        effective_show = True

    indicator: _IdleProgressIndicator | None = None
    if effective_show and _is_tty(sys.stderr):
        indicator = _IdleProgressIndicator(
            spinner_message or shorten(shown, width=72, placeholder="…"),
            stream=sys.stderr,
            style=progress_style,
            interval=progress_interval,
            idle_seconds=progress_idle_seconds,
        )
        indicator.start()

    try:
        if stream_output:
            result = _run_streaming(cmd, cwd=cwd, env=env, timeout=timeout,
                                    on_line=indicator.touch if indicator else None)
        else:
            result = _run_captured(cmd, cwd=cwd, env=env, timeout=timeout)
    except FileNotFoundError as e:
        raise ExternalCommandError(
            step,
            redact_cmd(cmd, secrets),
            f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (az/docker 가 설치되어 있는지 확인하세요)",
        ) from e
    except subprocess.TimeoutExpired as e:
        raise ExternalCommandError(
            step,
            redact_cmd(cmd, secrets),
            f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {shown}",
        ) from e
    finally:
        if indicator is not None:
            indicator.stop()

    if result.stdout and not stream_output:
        logger.debug("명령 stdout: %s", shorten(redact(result.stdout.strip(), secrets), width=2000))
    if result.stderr:
        logger.debug("명령 stderr: %s", shorten(redact(result.stderr.strip(), secrets), width=2000))

    if check and not result.ok:
        stderr = redact(result.stderr.strip(), secrets)
        stdout = redact(result.stdout.strip(), secrets)
        detail = ""
        if stderr:
            detail = "stderr:\n" + shorten(stderr, width=2000)
        elif stdout:
            detail = "stdout:\n" + shorten(stdout, width=2000)
        raise ExternalCommandError(
            step,
            redact_cmd(cmd, secrets),
            f"명령 실행 실패: {shown} (exit={result.returncode})",
            returncode=result.returncode,
            detail=detail,
        )

    return result


def _run_captured(
    cmd: Sequence[str],
    *,
    cwd: str | None,
    env: Mapping[str, str] | None,
    timeout: float | None,
) -> RunResult:
    proc = subprocess.run(  # noqa: S603
        list(cmd),
        check=False,
        capture_output=True,
        text=True,
        timeout=timeout,
        cwd=cwd,
        env=dict(env) if env is not None else None,
    )
    return RunResult(returncode=proc.returncode, stdout=proc.stdout or "", stderr=proc.stderr or "")


def _run_streaming(
    cmd: Sequence[str],
    *,
    cwd: str | None,
    env: Mapping[str, str] | None,
    timeout: float | None,
    on_line: Callable[[], None] | None = None,
) -> RunResult:
    # docker 는 stderr 로도 진행 로그를 내보내므로 STDOUT 으로 합친다.
    proc = subprocess.Popen(  # noqa: S603
        list(cmd),
        cwd=cwd,
        env=dict(env) if env is not None else None,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
    )

    out_lines: list[str] = []
    try:
        assert proc.stdout is not None
        for line in proc.stdout:
            if on_line is not None:
                on_line()
            out_lines.append(line)
            sys.stdout.write(line)
            sys.stdout.flush()
        returncode = proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        raise
    finally:
        if proc.stdout is not None:
            proc.stdout.close()

    # 스트리밍 모드에서는 stdout/stderr 가 합쳐져 있으므로 실패 요약용으로 stderr 자리에 둔다.
    combined = "".join(out_lines)
    return RunResult(
        returncode=returncode,
        stdout=combined,
        stderr=combined if returncode != 0 else "",
    )
