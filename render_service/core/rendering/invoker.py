"""
Render Invoker
==============

Runs the Remotion CLI as a child process for one composition and classifies
the result. The command is built as an argument vector and never passes
through a shell, so input props reach the renderer verbatim.
"""

import asyncio
import json
import os
import signal
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Mapping, Optional

from render_service.config.logging import get_logger
from render_service.config.settings import Settings
from render_service.models.schemas import RenderOutcome

logger = get_logger(__name__)


def serialize_input_props(input_props: Optional[Mapping[str, Any]]) -> str:
    """
    Serialize input props to compact, key-sorted JSON.

    Raises:
        TypeError: If a value is not JSON serializable
        ValueError: If a value is NaN or infinite
    """
    return json.dumps(
        dict(input_props or {}),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def _tail(text: str, limit: int) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]


class RemotionInvoker:
    """Invokes ``remotion render`` and turns its exit status and output into a RenderOutcome."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.logger: Any = logger.bind(component="invoker")
        self._semaphore: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(settings.max_concurrent_renders)
            if settings.max_concurrent_renders
            else None
        )

    def build_command(self, composition_id: str, output_path: Path, props_json: str) -> List[str]:
        """Build the renderer argument vector."""
        return [
            *self.settings.render_command,
            str(self.settings.entry_point_path),
            composition_id,
            str(output_path),
            f"--props={props_json}",
            *self.settings.extra_render_args,
        ]

    @asynccontextmanager
    async def _render_slot(self) -> AsyncGenerator[None, None]:
        if self._semaphore is None:
            yield
            return
        async with self._semaphore:
            yield

    async def invoke(
        self,
        composition_id: str,
        output_path: Path,
        input_props: Optional[Dict[str, Any]] = None,
    ) -> RenderOutcome:
        """
        Render ``composition_id`` into ``output_path``.

        Args:
            composition_id: Remotion composition identifier
            output_path: File the renderer writes to
            input_props: Props handed to the composition

        Returns:
            RenderOutcome describing success or the captured failure
        """
        props_json = serialize_input_props(input_props)
        command = self.build_command(composition_id, output_path, props_json)
        cwd = self.settings.remotion_project_dir

        self.logger.info(
            "Executing Remotion command",
            composition_id=composition_id,
            command=command,
            cwd=str(cwd),
        )

        async with self._render_slot():
            start_time = time.monotonic()
            try:
                process = await asyncio.create_subprocess_exec(
                    *command,
                    cwd=str(cwd),
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    start_new_session=True,
                )
            except OSError as e:
                self.logger.error("Failed to start Remotion", error=str(e))
                return RenderOutcome.failed(
                    "Could not start the renderer",
                    diagnostics=str(e),
                    duration=time.monotonic() - start_time,
                )

            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(), timeout=self.settings.render_timeout
                )
            except asyncio.TimeoutError:
                await self._terminate(process)
                duration = time.monotonic() - start_time
                self.logger.error(
                    "Remotion render timed out",
                    composition_id=composition_id,
                    timeout=self.settings.render_timeout,
                )
                return RenderOutcome.failed(
                    f"Render timed out after {self.settings.render_timeout} seconds",
                    diagnostics=f"Render timed out after {self.settings.render_timeout} seconds",
                    return_code=process.returncode,
                    duration=duration,
                )
            except asyncio.CancelledError:
                self.logger.warning(
                    "Render cancelled, stopping Remotion", composition_id=composition_id
                )
                await self._terminate(process)
                raise

            duration = time.monotonic() - start_time

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        if stdout.strip():
            self.logger.info("Remotion stdout", output=stdout.strip())
        if stderr.strip():
            # Remotion writes progress to stderr as well as errors
            self.logger.warning("Remotion stderr", output=stderr.strip())

        outcome = self.classify(process.returncode, stdout, stderr, output_path, duration)
        if outcome.success:
            self.logger.info(
                "Video rendered successfully",
                output_path=str(output_path),
                duration=round(duration, 3),
            )
        else:
            self.logger.error(
                "Remotion rendering failed",
                reason=outcome.reason,
                return_code=outcome.return_code,
                stderr=stderr.strip(),
                stdout=stdout.strip(),
            )
        return outcome

    def classify(
        self,
        return_code: Optional[int],
        stdout: str,
        stderr: str,
        output_path: Path,
        duration: float = 0.0,
    ) -> RenderOutcome:
        """
        Classify a finished render.

        A non-zero exit code always fails. On a zero exit, stderr is scanned for
        failure markers; stdout is never a failure signal. A clean exit without
        an output file also fails.
        """
        limit = self.settings.max_diagnostic_chars
        common = {
            "return_code": return_code,
            "stdout": stdout,
            "stderr": stderr,
            "duration": duration,
        }

        if return_code != 0:
            return RenderOutcome.failed(
                f"Renderer exited with code {return_code}",
                diagnostics=_tail(stderr or stdout, limit),
                **common,
            )

        marker = self.find_failure_marker(stderr)
        if marker is not None:
            return RenderOutcome.failed(
                f"Renderer reported '{marker}' on stderr",
                diagnostics=_tail(stderr, limit),
                **common,
            )

        if not output_path.is_file():
            return RenderOutcome.failed(
                "Renderer produced no output file",
                diagnostics=_tail(stderr or stdout, limit),
                **common,
            )

        return RenderOutcome.succeeded(**common)

    def find_failure_marker(self, stderr: str) -> Optional[str]:
        """Return the first configured failure marker found in ``stderr``."""
        lowered = stderr.lower()
        for marker in self.settings.stderr_failure_markers:
            if marker in lowered:
                return marker
        return None

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Kill the renderer and everything it spawned, then reap it."""
        if process.returncode is not None:
            return
        try:
            if hasattr(os, "killpg"):
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
        await process.wait()
