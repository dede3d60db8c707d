"""Git operations: locate the project a vendorsync command runs in."""

from __future__ import annotations

from pathlib import Path

from git import InvalidGitRepositoryError, NoSuchPathError, Repo


def find_project_root(start: str | Path = ".") -> Path:
    """Return the working tree root containing ``start``.

    Outside a Git repository (or in a bare one) ``start`` itself is the root,
    so internal vendoring also works in plain directories.
    """
    path = Path(start).resolve()
    try:
        repo = Repo(path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return path

    if repo.working_tree_dir is None:
        return path
    return Path(repo.working_tree_dir)
