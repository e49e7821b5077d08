"""Configuration of a validation run.

Settings come from defaults, an optional YAML configuration file, and the
command line, with command-line values taking precedence.

Example:
    >>> from genevet.config import RunConfig
    >>> config = RunConfig.load("genevet.yaml")
    >>> config.validations
    ['lenc', 'lenr']
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import attrs
import yaml

from genevet.homology.reader import parse_fields
from genevet.validation.base import ALL_CHECKS, parse_validations

# =============================================================================
# Default Configuration Values
# =============================================================================

DEFAULT_OUTPUT_SUFFIX = "_genevet"
DEFAULT_NUM_THREADS = 1
DEFAULT_START_INDEX = 1


def default_max_workers() -> int:
    """Worker threads used when none are configured."""
    return min(32, (os.cpu_count() or 1) + 4)


def _optional_path(value: Any) -> Path | None:
    return None if value is None or value == "" else Path(value)


# =============================================================================
# Configuration Classes
# =============================================================================


@attrs.define
class RunConfig:
    """Everything the orchestrator needs for one run.

    Attributes:
        validations: Check aliases to run, or ``["all"]``.
        search_results: Precomputed BLAST XML or tabular results. Without
            it every prediction is searched live against ``db``.
        tabular_fields: Column layout of tabular results, space separated.
        db: BLAST database for live searches and checks that need one.
        num_threads: Threads for external tools.
        concurrent: Validate queries on worker threads.
        max_workers: Worker threads when ``concurrent`` is set.
        start_index: 1-based index of the first query to validate.
        raw_sequences: Companion raw-sequence FASTA file.
        output_dir: Directory for reports. Defaults to
            ``<input>_genevet`` next to the input.
    """

    validations: list[str] = attrs.Factory(lambda: [ALL_CHECKS])
    search_results: Path | None = attrs.field(default=None, converter=_optional_path)
    tabular_fields: str | None = None
    db: str = "swissprot -remote"
    num_threads: int = DEFAULT_NUM_THREADS
    concurrent: bool = True
    max_workers: int = attrs.Factory(default_max_workers)
    start_index: int = DEFAULT_START_INDEX
    raw_sequences: Path | None = attrs.field(default=None, converter=_optional_path)
    output_dir: Path | None = attrs.field(default=None, converter=_optional_path)

    @property
    def fields(self) -> tuple[str, ...] | None:
        """Parsed tabular column layout."""
        return parse_fields(self.tabular_fields)

    @property
    def selected_validations(self) -> list[str]:
        """Check aliases split on whitespace and commas."""
        return parse_validations(self.validations)

    def output_dir_for(self, input_path: Path | str) -> Path:
        """Output directory for ``input_path``."""
        if self.output_dir is not None:
            return self.output_dir
        input_path = Path(input_path)
        return input_path.with_name(input_path.name + DEFAULT_OUTPUT_SUFFIX)

    def validate(self) -> None:
        """Check that the settings are usable.

        Raises:
            ValueError: If a setting is out of range.
        """
        if not self.selected_validations:
            raise ValueError("at least one check alias must be selected")
        if self.num_threads < 1:
            raise ValueError(f"num_threads must be >= 1, got {self.num_threads}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.start_index < 1:
            raise ValueError(f"start_index must be >= 1, got {self.start_index}")
        if self.search_results is None and not self.db:
            raise ValueError("a database is required when no search results are given")
        if self.tabular_fields is not None and not self.fields:
            raise ValueError("tabular_fields is empty")

    @classmethod
    def load(cls, path: Path | str | None = None) -> RunConfig:
        """Load configuration from a YAML file.

        Args:
            path: Configuration file. If None, returns the defaults.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not valid YAML or has unknown keys.
        """
        if path is None:
            return cls()

        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid configuration file {path}: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must hold a mapping")

        known = {field.name for field in attrs.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

        if isinstance(data.get("validations"), str):
            data["validations"] = [data["validations"]]
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        return attrs.asdict(
            self,
            value_serializer=lambda _, __, value: str(value) if isinstance(value, Path) else value,
        )

    def save(self, path: Path | str) -> None:
        """Save configuration as YAML."""
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
