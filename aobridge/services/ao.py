"""AO network connector.

Messages are sent by writing a small Lua script and evaluating it with
the `aos` command line. The connector remembers which ProcessBuilder and
EmailBot processes the server is connected to; that state lives only in
memory.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from loguru import logger

from aobridge.errors import UpstreamUnavailableError

_OUTPUT_LIMIT = 20_000


@dataclass(frozen=True, slots=True)
class MessageResult:
    target: str
    action: str
    output: str

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, "target": self.target, "action": self.action, "output": self.output}


def lua_string(value: str) -> str:
    """Quote `value` as a Lua long-bracket string that cannot be closed early."""
    level = 0
    while f"]{'=' * level}]" in value:
        level += 1
    eq = "=" * level
    return f"[{eq}[{value}]{eq}]"


def build_send_script(target: str, action: str, data: str) -> str:
    return (
        "Send({\n"
        f"  Target = {lua_string(target)},\n"
        f"  Action = {lua_string(action)},\n"
        f"  Data = {lua_string(data)}\n"
        "})\n"
        'print("Message sent successfully")\n'
    )


class AOClient:
    """Connection state plus send-message support for AO processes."""

    def __init__(self, aos_command: str = "aos", timeout: float = 60.0) -> None:
        self._aos_command = aos_command
        self._timeout = timeout
        self.process_id: str | None = None
        self.email_bot_id: str | None = None

    @property
    def connected(self) -> bool:
        return self.process_id is not None

    def connect(self, process_id: str, email_bot_id: str | None = None) -> None:
        self.process_id = process_id
        self.email_bot_id = email_bot_id
        logger.info("Connected to ProcessBuilder {} (EmailBot: {})", process_id, email_bot_id)

    def disconnect(self) -> None:
        self.process_id = None
        self.email_bot_id = None
        logger.info("Disconnected from AO platform")

    def status(self) -> dict[str, Any]:
        return {
            "connected": self.connected,
            "processId": self.process_id,
            "emailBotId": self.email_bot_id,
        }

    def targets(self) -> list[dict[str, str]]:
        return [
            {
                "id": self.email_bot_id or "",
                "name": "Email Bot",
                "description": "Sends emails and notifications",
                "icon": "bi-envelope",
            },
            {
                "id": self.process_id or "",
                "name": "Process Builder",
                "description": "Creates and manages automations",
                "icon": "bi-gear",
            },
        ]

    def recent_messages(self, process_id: str) -> list[dict[str, str]]:
        # TODO: read the process inbox once aos exposes a non-interactive query.
        return [
            {
                "from": "system",
                "action": "ProcessStarted",
                "data": f"Process {process_id} started successfully",
                "timestamp": datetime.now(UTC).isoformat(),
            }
        ]

    async def send_message(self, target: str, action: str, data: str = "") -> MessageResult:
        """Send Target/Action/Data to an AO process.

        Raises UpstreamUnavailableError if aos is missing, times out, or exits non-zero.
        """
        logger.info("Sending AO message to {} action={} data_len={}", target, action, len(data))
        tmp_dir = Path(tempfile.mkdtemp(prefix="ao-msg-"))
        script = tmp_dir / "send-message.lua"
        script.write_text(build_send_script(target, action, data), encoding="utf-8")

        try:
            proc = await asyncio.create_subprocess_exec(
                self._aos_command,
                "-e",
                str(script),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    proc.communicate(), timeout=self._timeout
                )
            except TimeoutError as exc:
                proc.kill()
                await proc.wait()
                raise UpstreamUnavailableError(f"aos timed out after {self._timeout}s") from exc
        except FileNotFoundError as exc:
            raise UpstreamUnavailableError(f"aos command not found: {self._aos_command}") from exc
        except OSError as exc:
            raise UpstreamUnavailableError(f"Could not run aos: {exc}") from exc
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)

        stderr = stderr_bytes.decode("utf-8", errors="replace")
        if stderr:
            logger.warning("aos stderr: {}", stderr.strip()[:500])
        if proc.returncode != 0:
            raise UpstreamUnavailableError(f"AOS process exited with code {proc.returncode}")

        output = stdout_bytes.decode("utf-8", errors="replace")[:_OUTPUT_LIMIT]
        return MessageResult(target=target, action=action, output=output)
