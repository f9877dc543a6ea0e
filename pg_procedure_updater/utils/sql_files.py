from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pg_procedure_updater.utils.logger import get_logger

logger = get_logger(__name__)

PUBLIC_SCHEMA_PREFIX = "public."


def replacement_file_name(qualified_name: str) -> str:
    """Name of the .sql file expected to hold the DDL for an object.

    Objects in the public schema are exported without the schema prefix;
    any other schema stays part of the file name.
    """
    name = qualified_name.strip()
    if name.lower().startswith(PUBLIC_SCHEMA_PREFIX) and len(name) > len(PUBLIC_SCHEMA_PREFIX):
        name = name[len(PUBLIC_SCHEMA_PREFIX):]
    return f"{name}.sql"


def object_key(qualified_name: str) -> str:
    """Case-insensitive identity of an object; 'public.f' and 'f' are the same object."""
    name = qualified_name.strip().lower()
    if name.startswith(PUBLIC_SCHEMA_PREFIX) and len(name) > len(PUBLIC_SCHEMA_PREFIX):
        return name[len(PUBLIC_SCHEMA_PREFIX):]
    return name


def read_script_lines(path: str | Path, encoding: str = "utf-8") -> Tuple[List[str], str]:
    """Read a SQL script, keeping each line's own line ending.

    Returns the lines and the encoding they were decoded with, so that the
    script can be written back byte for byte.
    """
    p = Path(path)
    try:
        with p.open("r", encoding=encoding, newline="") as f:
            return f.readlines(), encoding
    except UnicodeDecodeError:
        logger.warning(f"{p} is not valid {encoding}; reading it as latin-1")
        with p.open("r", encoding="latin-1", newline="") as f:
            return f.readlines(), "latin-1"


class ScriptFolder:
    """Finds the per-object .sql files exported into a directory tree."""

    def __init__(self, root: str | Path, recurse: bool = True) -> None:
        self.root = Path(root)
        if not self.root.is_dir():
            raise ValueError(f"SQL files directory not found: {self.root}")
        self.recurse = recurse
        self._files: Optional[Dict[str, Path]] = None

    def _index(self) -> Dict[str, Path]:
        if self._files is None:
            candidates = self.root.rglob("*.sql") if self.recurse else self.root.glob("*.sql")
            files: Dict[str, Path] = {}
            # Shallowest match wins, then alphabetical
            for sql_file in sorted(candidates, key=lambda p: (len(p.parts), str(p).lower())):
                if sql_file.is_file():
                    files.setdefault(sql_file.name.lower(), sql_file)
            self._files = files
            logger.debug(f"Indexed {len(files)} .sql files below {self.root}")
        return self._files

    def find(self, qualified_name: str) -> Optional[Path]:
        return self._index().get(replacement_file_name(qualified_name).lower())
