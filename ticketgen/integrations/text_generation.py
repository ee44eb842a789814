"""Text generation over the Claude CLI.

Provides ``ClaudeCliTextGenerator`` (subprocess invocation with timeout and
retry/backoff) and ``parse_llm_json`` for pulling a JSON object out of model
output. Failures map onto the ticketgen error taxonomy:

- binary missing / spawn failure / CLI error -> DependencyUnavailable
- time budget exceeded                        -> GenerationTimeout
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import os
import random
import re
import shutil
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..errors import DependencyUnavailable, GenerationTimeout

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:image/(?P<fmt>[a-zA-Z0-9.+-]+);base64,(?P<data>.+)$", re.DOTALL)


@dataclass
class TextGeneration:
    text: str
    token_usage: Optional[Dict[str, int]] = None
    retry_count: int = 0
    duration_ms: int = 0


@runtime_checkable
class TextGenerator(Protocol):
    """Anything that turns a prompt into text."""

    @property
    def available(self) -> bool: ...

    async def generate(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        system_prompt: str = "",
        image_path: Optional[str] = None,
        caller: str = "ticketgen",
    ) -> TextGeneration: ...


class ImageFile:
    """Context manager giving the CLI a readable file for a screenshot reference.

    Local paths are used as-is; ``data:image/...;base64`` URLs are written to
    a temporary file that is removed on exit. Anything else yields None.
    """

    def __init__(self, reference: Optional[str]):
        self._reference = reference
        self._temp_path: Optional[str] = None

    def __enter__(self) -> Optional[str]:
        ref = self._reference
        if not ref:
            return None
        if os.path.isfile(ref):
            return os.path.abspath(ref)
        match = _DATA_URL_RE.match(ref)
        if not match:
            logger.debug("Screenshot reference is not a local file or data URL; skipping image")
            return None
        try:
            data = base64.b64decode(match.group("data"), validate=False)
        except (binascii.Error, ValueError):
            logger.warning("Screenshot data URL is not valid base64; skipping image")
            return None
        suffix = "." + ("jpg" if match.group("fmt").lower() in ("jpeg", "jpg") else match.group("fmt").lower())
        fd, path = tempfile.mkstemp(prefix="ticketgen-shot-", suffix=suffix)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        self._temp_path = path
        return path

    def __exit__(self, *exc_info: Any) -> None:
        if self._temp_path:
            try:
                os.unlink(self._temp_path)
            except OSError:
                logger.debug("Could not remove temp screenshot %s", self._temp_path)
            self._temp_path = None


async def _reap(proc: asyncio.subprocess.Process) -> None:
    """Kill a CLI process that is still running and wait for it to exit."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            logger.debug("Claude CLI process %s already exited", proc.pid)
        await proc.wait()


class ClaudeCliTextGenerator:
    """Text generation through ``claude -p``.

    The CLI has no sampling flags, so ``max_tokens`` and ``temperature`` are
    honored through prompt length guidance only; they are logged per call.

    Args:
        claude_bin: CLI executable name or path.
        model: Optional ``--model`` value.
        timeout: Per-attempt timeout in seconds.
        max_retries: Extra attempts after a failure (0 = single attempt).
        retry_base_delay: First backoff delay; doubles per retry, +/-25% jitter.
    """

    def __init__(
        self,
        claude_bin: str = "claude",
        model: str = "",
        timeout: float = 120.0,
        max_retries: int = 0,
        retry_base_delay: float = 5.0,
    ):
        self._claude_bin = claude_bin
        self._model = model
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._retry_base_delay = retry_base_delay
        self._calls = 0
        self._failures = 0

    @property
    def available(self) -> bool:
        """True when the CLI binary resolves on this host (no process is spawned)."""
        return bool(self._claude_bin) and (
            os.path.isfile(self._claude_bin) or shutil.which(self._claude_bin) is not None
        )

    @property
    def stats(self) -> Dict[str, int]:
        return {"calls": self._calls, "failures": self._failures}

    def _build_command(self, cli_prompt: str, image_path: Optional[str]) -> list:
        cmd = [
            self._claude_bin,
            "-p", cli_prompt,
            "--output-format", "json",
            "--dangerously-skip-permissions",
            "--no-session-persistence",
        ]
        if self._model:
            cmd.extend(["--model", self._model])
        if image_path:
            cmd.extend(["--allowedTools", "Read"])
        else:
            cmd.extend(["--tools", ""])
        return cmd

    async def generate(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        system_prompt: str = "",
        image_path: Optional[str] = None,
        caller: str = "ticketgen",
    ) -> TextGeneration:
        if not self.available:
            raise DependencyUnavailable(f"Claude CLI not found: {self._claude_bin!r}")

        parts = [system_prompt, ""] if system_prompt else []
        if image_path:
            parts.append(f"First, read the screenshot image at: {image_path}")
            parts.append("Use this screenshot as visual reference.")
            parts.append("")
        parts.append(prompt)
        cmd = self._build_command("\n".join(parts), image_path)

        # Inherit env but remove CLAUDECODE to avoid nested session detection
        cli_env = {k: v for k, v in os.environ.items() if k != "CLAUDECODE"}

        self._calls += 1
        attempts = 1 + self._max_retries
        last_error: Optional[Exception] = None
        rate_limited = False
        start = time.monotonic()

        for attempt in range(attempts):
            if attempt > 0:
                base = self._retry_base_delay * (2 ** (attempt - 1))
                if rate_limited:
                    base = max(base, 30.0)
                delay = base * (1.0 + random.uniform(-0.25, 0.25))
                logger.warning(
                    "%s: retry %d/%d after %.1fs (previous error: %s)",
                    caller, attempt, self._max_retries, delay, last_error,
                )
                await asyncio.sleep(delay)

            logger.info(
                "%s: calling claude CLI (attempt %d/%d, max_tokens=%d, temperature=%.2f)",
                caller, attempt + 1, attempts, max_tokens, temperature,
            )

            try:
                proc = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=cli_env,
                )
            except OSError as e:
                last_error = DependencyUnavailable(f"Claude CLI spawn failed: {e}")
                continue

            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
            except asyncio.TimeoutError:
                await _reap(proc)
                last_error = GenerationTimeout(f"Claude CLI timed out after {self._timeout}s")
                continue
            except asyncio.CancelledError:
                # Tier budget expired or the request went away
                await _reap(proc)
                raise

            raw_text = stdout.decode("utf-8", errors="replace").strip()
            envelope: Any = None
            try:
                envelope = json.loads(raw_text)
            except json.JSONDecodeError:
                pass

            if proc.returncode != 0 or (isinstance(envelope, dict) and envelope.get("is_error")):
                err_msg = stderr.decode("utf-8", errors="replace").strip()
                if not err_msg and isinstance(envelope, dict):
                    err_msg = str(envelope.get("result", ""))
                lowered = err_msg.lower()
                rate_limited = any(s in lowered for s in ("rate", "429", "overloaded", "too many", "throttl"))
                last_error = DependencyUnavailable(
                    f"Claude CLI failed (exit {proc.returncode}): {err_msg[:500]}"
                )
                continue

            token_usage: Optional[Dict[str, int]] = None
            if isinstance(envelope, dict):
                usage = envelope.get("usage")
                if isinstance(usage, dict):
                    token_usage = {
                        "input_tokens": usage.get("input_tokens", 0),
                        "output_tokens": usage.get("output_tokens", 0),
                    }
                if "result" in envelope:
                    raw_text = str(envelope["result"])
                elif "content" in envelope:
                    raw_text = str(envelope["content"])

            duration_ms = int((time.monotonic() - start) * 1000)
            logger.info("%s: claude CLI returned %d chars in %dms", caller, len(raw_text), duration_ms)
            return TextGeneration(
                text=raw_text,
                token_usage=token_usage,
                retry_count=attempt,
                duration_ms=duration_ms,
            )

        self._failures += 1
        raise last_error or DependencyUnavailable(f"Claude CLI failed after {attempts} attempts")


def parse_llm_json(raw: str, caller: str = "LLM") -> Optional[Dict]:
    """Parse a JSON object from model output, handling markdown fences and preamble.

    Tries in order: direct parse -> strip leading fence -> regex fence -> outermost braces.
    Returns None when nothing parses to a dict.
    """
    if not raw:
        return None

    text = raw.strip()

    if text.startswith("```"):
        lines = text.split("\n")[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()

    candidates = [text]
    fence_match = re.search(r"```(?:json)?\s*\n(.*?)\n```", text, re.DOTALL)
    if fence_match:
        candidates.append(fence_match.group(1))
    brace_start = text.find("{")
    brace_end = text.rfind("}")
    if brace_start >= 0 and brace_end > brace_start:
        candidates.append(text[brace_start:brace_end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.warning("%s: no JSON object in response, raw[:300]: %s", caller, text[:300])
    return None
