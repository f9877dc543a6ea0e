"""Run options for one update pass."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Tuple

from pg_procedure_updater.core.errors import ConfigError
from pg_procedure_updater.core.reconciler import DEFAULT_RETURN_CODE_ARGUMENTS
from pg_procedure_updater.utils.config import Config


@dataclass
class UpdaterOptions:
    input_file_path: Optional[Path] = None
    # Directory with one .sql file per procedure or function; defaults to the input file's directory
    sql_files_directory: Optional[Path] = None
    recurse: bool = True
    verbose: bool = False
    output_file_path: Optional[Path] = None
    output_suffix: str = "_updated"
    encoding: str = "utf-8"
    argument_indent: str = "    "
    emit_argument_comments: bool = False
    return_code_arguments: Tuple[str, ...] = field(default=DEFAULT_RETURN_CODE_ARGUMENTS)

    @classmethod
    def from_config(cls, config: Config, **overrides: Any) -> "UpdaterOptions":
        """Build options from the ``updater`` config section; non-None overrides win."""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in config.get_section("updater").items() if key in known}
        values.update({key: value for key, value in overrides.items() if value is not None})

        if "return_code_arguments" in values:
            values["return_code_arguments"] = tuple(values["return_code_arguments"])
        for key in ("input_file_path", "sql_files_directory", "output_file_path"):
            if values.get(key):
                values[key] = Path(values[key])

        return cls(**values)

    def validate(self) -> None:
        """Check the options and fill in the SQL files directory when it was not given."""
        if not self.input_file_path or not str(self.input_file_path).strip():
            raise ConfigError("Specify the SQL script file to process")

        self.input_file_path = Path(self.input_file_path)

        if self.sql_files_directory is None or not str(self.sql_files_directory).strip():
            parent = self.input_file_path.resolve().parent
            self.sql_files_directory = parent
        else:
            self.sql_files_directory = Path(self.sql_files_directory)

        if not self.output_suffix and self.output_file_path is None:
            raise ConfigError("The output suffix cannot be empty; the input file would be overwritten")

    def resolved_output_path(self) -> Path:
        if self.output_file_path is not None:
            return Path(self.output_file_path)
        input_path = Path(self.input_file_path)
        return input_path.with_name(f"{input_path.stem}{self.output_suffix}{input_path.suffix}")

    def describe(self) -> str:
        rows = [
            ("Input script file:", self.input_file_path),
            ("Script file directory:", self.sql_files_directory),
            ("Search recursively:", self.recurse),
            ("Verbose Output:", self.verbose),
        ]
        return "\n".join(["Options:"] + [f" {label:<25} {value}" for label, value in rows])
