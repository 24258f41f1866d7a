from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger()

LOG_SUFFIX = ".jsonl"


@dataclass(frozen=True, slots=True)
class LogFile:
    path: "Path"
    # encoded directory name under projects/, used when no cwd is logged
    project_name: "str"


def discover_log_files(claude_dir: "Path") -> "list[LogFile]":
    """
    lists every *.jsonl file under each project directory of
    <claude_dir>/projects, recursively. A missing projects directory
    yields an empty list. The order is sorted so that it does not
    depend on filesystem iteration order.
    """
    projects_dir = claude_dir / "projects"
    if not projects_dir.is_dir():
        logger.debug("projects_dir_missing", path=str(projects_dir))
        return []

    files: "list[LogFile]" = []
    try:
        project_dirs = sorted(p for p in projects_dir.iterdir() if p.is_dir())
    except OSError as exc:
        logger.warning("projects_dir_unreadable", path=str(projects_dir), error=str(exc))
        return []

    for project_dir in project_dirs:
        for path in sorted(project_dir.rglob(f"*{LOG_SUFFIX}")):
            if path.is_file():
                files.append(LogFile(path=path, project_name=project_dir.name))

    return files
