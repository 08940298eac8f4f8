import os
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories if missing, and optionally error out when a path
# doesn't exist.
def ensure_directory(path: Path,must_exist=False):
    if must_exist:
        if not path.exists():
            raise FileNotFoundError(f"Required directory is missing: {path}")
        if not path.is_dir():
            raise NotADirectoryError(f"Expected a directory, got a file: {path}")
    else:
        path.mkdir(parents=True,exist_ok=True)
    return path

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path
    logs: Path
    current: Path

    @staticmethod
    def build():
        # STOPWATCH_HOME wins, then the usual roaming appdata folder, then a dot folder in home.
        override = os.getenv("STOPWATCH_HOME")
        if override:
            data = ensure_directory(Path(override))
        elif os.getenv("APPDATA"):
            data = ensure_directory(Path(os.getenv("APPDATA")) / "Stopwatch")
        else:
            data = ensure_directory(Path.home() / ".stopwatch")

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        current = ensure_directory(data / "current")

        return ProjectPaths(
            data = data,
            logs = logs,
            current = current,
        )
PATHS = ProjectPaths.build()
