"""JSON-file persistence for named pipeline configurations."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile
import threading
from typing import TYPE_CHECKING, Any

from chorus.errors import ConfigurationError
from chorus.pipeline.config import PipelineConfig

if TYPE_CHECKING:
    from chorus.pipeline.config import PipelineType

log = logging.getLogger(__name__)


def default_store_path() -> Path:
    return Path.home() / ".chorus" / "pipelines.json"


class ConfigStore:
    """Named PipelineConfigs backed by one JSON file.

    Reads hand out copies; every mutation is written through atomically
    (temp file then rename).
    """

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self.path = Path(path) if path is not None else default_store_path()
        self._lock = threading.RLock()
        self._configs: dict[str, PipelineConfig] = {}

    # --- Disk ---

    def load(self) -> None:
        """Replace the in-memory configs with the file contents.

        A missing or empty file yields an empty store.
        """
        with self._lock:
            try:
                raw = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                self._configs = {}
                return
            except OSError as e:
                raise ConfigurationError(
                    f"failed to read config file {self.path}: {e}"
                ) from e
            self._configs = self._parse(raw, source=str(self.path)) if raw.strip() else {}
        log.debug("Loaded %d pipeline configs from %s", len(self._configs), self.path)

    def save(self) -> None:
        with self._lock:
            self._write(self.path, _serialize(self._configs))

    def _commit(self, configs: dict[str, PipelineConfig]) -> None:
        """Write *configs*, then adopt them; a failed write changes nothing."""
        with self._lock:
            self._write(self.path, _serialize(configs))
            self._configs = configs

    @staticmethod
    def _write(path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ConfigurationError(f"failed to save config file {path}: {e}") from e

    @staticmethod
    def _parse(raw: str, *, source: str) -> dict[str, PipelineConfig]:
        try:
            data: Any = json.loads(raw)
        except ValueError as e:
            raise ConfigurationError(f"failed to parse {source}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"failed to parse {source}: expected a JSON object")

        configs: dict[str, PipelineConfig] = {}
        for name, entry in data.items():
            if not isinstance(entry, dict):
                raise ConfigurationError(f"invalid config {name!r} in {source}")
            # The key is authoritative for the name.
            config = PipelineConfig.from_dict({**entry, "name": name}, validate=False)
            try:
                config.validate()
            except ConfigurationError as e:
                raise ConfigurationError(f"invalid config {name!r} in {source}: {e}") from e
            configs[name] = config
        return configs

    # --- Access ---

    def get(self, name: str) -> PipelineConfig:
        with self._lock:
            config = self._configs.get(name)
            if config is None:
                raise ConfigurationError(
                    f"pipeline config {name!r} not found",
                    hint=f"Saved configs: {', '.join(sorted(self._configs)) or 'none'}",
                )
            return config.clone()

    def add(self, config: PipelineConfig) -> None:
        """Validate, store a copy under ``config.name`` and save."""
        config.validate()
        with self._lock:
            self._commit({**self._configs, config.name: config.clone()})

    def delete(self, name: str) -> None:
        with self._lock:
            if name not in self._configs:
                raise ConfigurationError(f"pipeline config {name!r} not found")
            self._commit({k: v for k, v in self._configs.items() if k != name})

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._configs)

    def list_configs(self) -> list[PipelineConfig]:
        with self._lock:
            return [self._configs[name].clone() for name in sorted(self._configs)]

    def exists(self, name: str) -> bool:
        with self._lock:
            return name in self._configs

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.exists(name)

    def export(self, name: str) -> str:
        return self.get(name).to_json()

    def import_json(self, data: str | bytes) -> PipelineConfig:
        config = PipelineConfig.from_json(data)
        self.add(config)
        return config

    def clear(self) -> None:
        self._commit({})

    # --- Backups ---

    def backup(self) -> Path | None:
        """Copy the current file next to itself; None when nothing is saved yet."""
        with self._lock:
            try:
                raw = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except OSError as e:
                raise ConfigurationError(f"failed to read config file: {e}") from e
            target = self.path.with_name(f"{self.path.name}.backup.{os.getpid()}")
            self._write(target, raw)
            return target

    def restore(self, backup_path: str | os.PathLike[str]) -> None:
        """Replace every config with the backup's, validating first."""
        source = Path(backup_path)
        try:
            raw = source.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"failed to read backup file: {e}") from e
        configs = self._parse(raw, source=str(source))
        self._commit(configs)

    # --- Queries ---

    def filter_by_type(self, pipeline_type: PipelineType) -> list[PipelineConfig]:
        return [c for c in self.list_configs() if c.type is pipeline_type]

    def filter_by_provider(self, provider: str) -> list[PipelineConfig]:
        return [c for c in self.list_configs() if provider in c.all_providers()]


def _serialize(configs: dict[str, PipelineConfig]) -> str:
    data = {name: config.to_dict() for name, config in sorted(configs.items())}
    return json.dumps(data, indent=2)
