"""Read-only view of the markdown vault: task files and their frontmatter."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..models.task import ProjectLink, basename
from ..utils.fields import extract_project_title, string_field

logger = logging.getLogger(__name__)

_FM_RE = re.compile(r"^---\s*\n(.*?)\n---", re.DOTALL)

TASK_TAG = '#task'


@dataclass
class TaskFile:
    """A candidate task file as listed from the task folder."""

    path: str
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    is_task: bool = True

    @property
    def basename(self) -> str:
        return basename(self.path)


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding='utf-8', errors='replace')
    except OSError:
        logger.warning("Cannot read file: %s", path)
        return None


def read_frontmatter(path: Path) -> dict:
    """Read YAML frontmatter from a markdown file. Returns {} on failure."""
    return parse_frontmatter(_read_text(path) or '', path)


def parse_frontmatter(text: str, source=None) -> dict:
    m = _FM_RE.match(text)
    if not m:
        return {}
    try:
        fm = yaml.safe_load(m.group(1))
        return fm if isinstance(fm, dict) else {}
    except yaml.YAMLError:
        logger.warning("Malformed YAML frontmatter in %s", source)
        return {}


def is_task_note(text: str, frontmatter: Dict[str, Any]) -> bool:
    """A note is a task when it carries the #task tag or an estimatedMinutes field."""
    return TASK_TAG in text or bool(frontmatter.get('estimatedMinutes'))


class Vault:
    """Vault rooted at a directory; all paths handed out are vault-relative."""

    def __init__(self, root, task_folder: str = 'TaskChute/Task', project_folder: str = 'TaskChute/Project'):
        self.root = Path(root)
        self.task_folder = task_folder.strip('/')
        self.project_folder = project_folder.strip('/')

    def absolute(self, path: str) -> Path:
        return self.root / path

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def exists(self, path: str) -> bool:
        return bool(path) and self.absolute(path).is_file()

    def created_at(self, path: str) -> Optional[datetime]:
        """File creation time as naive local time, or None when unknown.

        Uses the birth time where the platform reports one. Elsewhere st_ctime
        is the inode change time, which a chmod moves, so the earlier of
        st_ctime and st_mtime stands in for it.
        """
        try:
            stat = self.absolute(path).stat()
        except OSError:
            return None
        timestamp = getattr(stat, 'st_birthtime', None)
        if not timestamp:
            timestamp = min(stat.st_ctime, stat.st_mtime)
        return datetime.fromtimestamp(timestamp)

    def read_frontmatter(self, path: str) -> dict:
        return read_frontmatter(self.absolute(path))

    def list_task_files(self) -> List[TaskFile]:
        """Markdown files under the task folder, sorted by path."""
        folder = self.absolute(self.task_folder)
        if not folder.is_dir():
            logger.info("Task folder %s not found, no candidate files", folder)
            return []

        files = []
        for file_path in sorted(folder.rglob('*.md')):
            if not file_path.is_file():
                continue
            path = self.relative(file_path)
            text = _read_text(file_path) or ''
            frontmatter = parse_frontmatter(text, file_path)
            files.append(TaskFile(
                path=path,
                frontmatter=frontmatter,
                created_at=self.created_at(path),
                is_task=is_task_note(text, frontmatter),
            ))
        return files

    def find_by_basename(self, name: str) -> Optional[str]:
        """First markdown file anywhere in the vault named exactly ``<name>.md``."""
        if not name:
            return None
        # Compared by stem so glob characters in the name match literally
        for file_path in sorted(self.root.rglob('*.md')):
            if file_path.stem == name and file_path.is_file():
                return self.relative(file_path)
        return None

    def resolve_project(self, frontmatter: Dict[str, Any]) -> Optional[ProjectLink]:
        """Project link of a task.

        An explicit ``project_path`` wins. Otherwise the ``project`` wikilink
        title is looked up at ``<project_folder>/<title>.md``, then by basename
        anywhere in the vault. No match keeps the title with a null path.
        """
        title = extract_project_title(frontmatter.get('project'))
        explicit = string_field(frontmatter, 'project_path')
        if explicit:
            return ProjectLink(title=title or basename(explicit), path=explicit)
        if not title:
            return None

        conventional = f"{self.project_folder}/{title}.md"
        if self.exists(conventional):
            return ProjectLink(title=title, path=conventional)

        found = self.find_by_basename(title)
        if found is None:
            logger.debug("Project %r has no matching file", title)
        return ProjectLink(title=title, path=found)
