"""
Hook executor for lifecycle hooks.

Runs the hook scripts discovered for an event. Context is passed via the
GITPACK_HOOK_CONTEXT environment variable as a JSON-serialized
PackageEventContext.

Example hook script:
    #!/bin/sh
    NAME=$(echo "$GITPACK_HOOK_CONTEXT" | jq -r '.name')
    echo "Installed $NAME"
"""

import logging
import os
import subprocess
import time
from datetime import datetime
from pathlib import Path

from gitpack.core.exceptions import GitpackError
from gitpack.core.hooks.discovery import discover_hooks
from gitpack.core.hooks.models import HookConfig, HookResult, PackageEventContext

logger = logging.getLogger(__name__)


class HookError(GitpackError):
    """A hook script failed and the configuration asks to abort."""


class HookExecutor:
    """
    Executor for lifecycle hook scripts.

    Attributes:
        project_dir: Project root directory, also the scripts' working directory
        config: Hook configuration (timeout, fail_on_error, etc.)
    """

    def __init__(
        self,
        project_dir: Path,
        config: HookConfig | None = None,
    ):
        self.project_dir = project_dir
        self.config = config or HookConfig()

    def run(self, hook_name: str, context: PackageEventContext) -> list[HookResult]:
        """
        Run all hook scripts for a lifecycle event.

        Args:
            hook_name: Lifecycle event name
            context: Event payload passed to each script

        Returns:
            One HookResult per executed script

        Raises:
            HookError: If a script fails and config.fail_on_error is True
        """
        if not self.config.is_hook_enabled(hook_name):
            logger.debug("Hook %s is disabled, skipping", hook_name)
            return []

        scripts = discover_hooks(hook_name, self.project_dir, self.config)
        if not scripts:
            return []

        logger.info("Running %d hook(s) for %s (%s)", len(scripts), hook_name, context.name)

        results: list[HookResult] = []
        for script in scripts:
            result = self._execute_script(script, hook_name, context)
            results.append(result)

            if result.success:
                logger.info(
                    "Hook %s completed successfully in %.2fs", script.name, result.duration_seconds
                )
                continue

            logger.error(
                "Hook %s failed with exit code %d: %s",
                script.name,
                result.exit_code,
                result.error_message,
            )
            if self.config.fail_on_error:
                raise HookError(
                    f"Hook {script.name} failed with exit code {result.exit_code}: "
                    f"{result.error_message}",
                    hook=hook_name,
                    script=str(script),
                )

        return results

    def _execute_script(
        self,
        script_path: Path,
        hook_name: str,
        context: PackageEventContext,
    ) -> HookResult:
        env = self._build_environment(hook_name, context.to_json())

        start_time = time.time()
        try:
            result = subprocess.run(
                [str(script_path)],
                cwd=str(self.project_dir),
                env=env,
                capture_output=True,
                text=True,
                timeout=self.config.timeout_seconds,
            )
        except subprocess.TimeoutExpired as e:
            return HookResult(
                success=False,
                exit_code=-1,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
                duration_seconds=time.time() - start_time,
                timestamp=datetime.now(),
                error_message=f"Hook timed out after {self.config.timeout_seconds}s",
            )
        except OSError as e:
            return HookResult(
                success=False,
                exit_code=-1,
                duration_seconds=time.time() - start_time,
                timestamp=datetime.now(),
                error_message=f"Failed to execute hook: {e}",
            )

        return HookResult(
            success=result.returncode == 0,
            exit_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            duration_seconds=time.time() - start_time,
            timestamp=datetime.now(),
            error_message=None if result.returncode == 0 else result.stderr.strip(),
        )

    def _build_environment(self, hook_name: str, context_json: str) -> dict[str, str]:
        env = os.environ.copy()
        env["GITPACK_HOOK_NAME"] = hook_name
        env["GITPACK_HOOK_CONTEXT"] = context_json
        env["GITPACK_PROJECT_DIR"] = str(self.project_dir)
        return env


def _decode(output: bytes | str | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output
