"""One fetch-and-register run: download, save, verify, add startup entry."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, ContextManager, List, Mapping, Optional

from autofetch.core.errors import ArtifactMissingError, StartupValueWriteError
from autofetch.dispatch.invoker import DispatchInvoker
from autofetch.dispatch.variant import TaggedValue
from autofetch.platform.windows.automation import automation_context, create_automation_object
from autofetch.platform.windows.startup import StartupRegistrar
from autofetch.runner.download import DownloadOrchestrator, DownloadState
from autofetch.runner.persist import build_output_path, persist
from autofetch.schemas.config import AutofetchConfigSchema

LOGGER = logging.getLogger(__name__)


@dataclass
class JobReport:
    path: Path
    bytes_written: int = 0
    status_code: Optional[int] = None
    download_state: DownloadState = DownloadState.INIT
    startup_command: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


class FetchJob:
    """Wire the automation object, writer and registrar into a single run.

    The output path is computed once and the same :class:`~pathlib.Path` is
    used for the write, the existence check and the startup entry.
    """

    def __init__(
        self,
        config: AutofetchConfigSchema | None = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
        context_factory: Callable[[], ContextManager[Any]] = automation_context,
        object_factory: Callable[[str], Any] = create_automation_object,
        registrar: StartupRegistrar | None = None,
        writer: Callable[[TaggedValue, Path], int] = persist,
        invoker: DispatchInvoker | None = None,
    ) -> None:
        self._config = config or AutofetchConfigSchema()
        self._environ = environ
        self._context_factory = context_factory
        self._object_factory = object_factory
        self._registrar = registrar or StartupRegistrar(
            subkey=self._config.startup.subkey,
            launcher=self._config.startup.launcher,
        )
        self._writer = writer
        self._orchestrator = DownloadOrchestrator(invoker, self._config.request.to_options())

    def output_path(self) -> Path:
        output = self._config.output
        return build_output_path(
            self._environ,
            base_dir_env=output.base_dir_env,
            filename=output.filename,
            max_path=output.max_path,
        )

    def run(self, url: str) -> JobReport:
        path = self.output_path()
        report = JobReport(path=path)

        with self._context_factory():
            with self._object_factory(self._config.automation.prog_id) as handle:
                download = self._orchestrator.fetch(handle, url)
            report.download_state = download.state
            report.status_code = download.status_code
            if download.state is DownloadState.FAILED:
                report.warnings.append(f"Request failed at {download.failed_at}")

            body = download.body
            try:
                report.bytes_written = self._writer(body, path)
            finally:
                body.release()

        if not path.is_file():
            raise ArtifactMissingError(path)

        startup = self._config.startup
        if not startup.enabled:
            LOGGER.info("Startup registration disabled; leaving %s unregistered", path)
            return report

        try:
            report.startup_command = self._registrar.register(startup.entry_name, path)
        except StartupValueWriteError as exc:
            LOGGER.error("%s", exc)
            report.warnings.append(str(exc))
        return report


__all__ = ["FetchJob", "JobReport"]
