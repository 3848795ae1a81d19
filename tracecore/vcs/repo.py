"""RepoManager — initialise, repair, and query the git working tree.

All git operations use :func:`subprocess.run`; no GitPython dependency.
The engine needs only ``init``, ``status_matrix``, ``add``, ``commit`` and
``log`` (see :mod:`tracecore.vcs.history`).
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from tracecore.config import DEFAULT_AUTHOR_EMAIL, DEFAULT_AUTHOR_NAME, DEFAULT_BRANCH
from tracecore.errors import RepositoryUnavailable, TracecoreError

logger = logging.getLogger(__name__)

_DEFAULT_GITIGNORE = """\
# Python
__pycache__/
*.pyc

# Editor and OS files
*.tmp
*.swp
.DS_Store
Thumbs.db
"""

# Records are JSON; keep line endings stable across platforms.
_DEFAULT_GITATTRIBUTES = """\
*.json text eol=lf
*.md text eol=lf
"""

StatusRow = tuple[str, int, int, int]


class GitError(TracecoreError):
    """Raised when a git subprocess returns a non-zero exit code."""


def _run_git(
    *args: str,
    cwd: str | Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a git command via subprocess and return the result.

    Parameters
    ----------
    *args:
        Arguments passed after ``git``.
    cwd:
        Working directory for the command.
    check:
        If *True*, raise :class:`GitError` on non-zero exit.
    """
    cmd = ["git", *args]
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    result = subprocess.run(
        cmd,
        cwd=cwd,
        capture_output=True,
        text=True,
    )
    if check and result.returncode != 0:
        raise GitError(
            f"git {' '.join(args)} failed (rc={result.returncode}): "
            f"{result.stderr.strip()}"
        )
    return result


def _matrix_row(path: str, xy: str, in_head: bool) -> StatusRow:
    """Translate a porcelain ``XY`` code into ``(path, head, workdir, stage)``.

    head: 0 absent, 1 present.  workdir: 0 absent, 1 same as HEAD,
    2 different.  stage: 0 absent, 1 same as HEAD, 2 same as workdir,
    3 different from both.
    """
    head = 1 if in_head else 0
    x, y = xy[0], xy[1]
    if xy == "??":
        return (path, head, 2, 0)

    if y == "D":
        workdir = 0
    elif y != " ":
        workdir = 2
    elif x == " ":
        workdir = 1
    elif x == "D":
        workdir = 0
    else:
        workdir = 2

    if x == " ":
        stage = head
    elif x == "D":
        stage = 0
    else:
        stage = 2 if y == " " else 3
    return (path, head, workdir, stage)


class RepoManager:
    """Manage the git repository behind one workspace.

    Parameters
    ----------
    path:
        Root directory of the repository.  Can be an existing repo or a
        path to initialise.
    author_name, author_email:
        Identity written into the local git config on init.
    """

    def __init__(
        self,
        path: str | Path,
        author_name: str = DEFAULT_AUTHOR_NAME,
        author_email: str = DEFAULT_AUTHOR_EMAIL,
    ) -> None:
        self.path = Path(path).resolve()
        self.author_name = author_name
        self.author_email = author_email

    @property
    def git_dir(self) -> Path:
        return self.path / ".git"

    # -- Initialisation -------------------------------------------------------

    def init_repo(self) -> Path:
        """Initialise a git repository on the ``main`` branch.

        Creates ``.gitignore`` and ``.gitattributes``, then makes an
        initial commit so that HEAD always resolves.

        Returns the repo root path.
        """
        self.path.mkdir(parents=True, exist_ok=True)
        _run_git("init", cwd=self.path)
        _run_git("symbolic-ref", "HEAD", f"refs/heads/{DEFAULT_BRANCH}", cwd=self.path)

        _run_git("config", "user.email", self.author_email, cwd=self.path, check=False)
        _run_git("config", "user.name", self.author_name, cwd=self.path, check=False)
        _run_git("config", "commit.gpgsign", "false", cwd=self.path, check=False)

        gi = self.path / ".gitignore"
        if not gi.exists():
            gi.write_text(_DEFAULT_GITIGNORE, encoding="utf-8")

        ga = self.path / ".gitattributes"
        if not ga.exists():
            ga.write_text(_DEFAULT_GITATTRIBUTES, encoding="utf-8")

        _run_git("add", ".gitignore", ".gitattributes", cwd=self.path)
        _run_git("commit", "-m", "chore: initialise tracecore repository", cwd=self.path)

        logger.info("Initialised tracecore repo at %s", self.path)
        return self.path

    def ensure_ready(self) -> bool:
        """Make the repository usable, initialising or repairing it.

        A ``.git`` directory whose ``HEAD`` file is missing gets a fresh
        ``HEAD`` pointing at ``refs/heads/main``; objects and refs are left
        alone.  A missing ``.git`` is initialised from scratch.

        Returns *True* if anything had to be done.
        """
        if not self.git_dir.is_dir():
            self.init_repo()
            return True
        head = self.git_dir / "HEAD"
        if head.is_file():
            return False
        head.write_text(f"ref: refs/heads/{DEFAULT_BRANCH}\n", encoding="utf-8")
        logger.warning("Repaired missing HEAD in %s", self.git_dir)
        return True

    # -- Status / info --------------------------------------------------------

    def is_repo(self) -> bool:
        """Return *True* if *self.path* holds a usable git repository."""
        if not (self.git_dir / "HEAD").is_file():
            return False
        result = _run_git(
            "rev-parse", "--is-inside-work-tree",
            cwd=self.path,
            check=False,
        )
        return result.returncode == 0 and result.stdout.strip() == "true"

    def has_commits(self) -> bool:
        result = _run_git("rev-parse", "--verify", "-q", "HEAD", cwd=self.path, check=False)
        return result.returncode == 0

    def status(self) -> str:
        """Return the output of ``git status --porcelain``."""
        result = _run_git("status", "--porcelain", cwd=self.path)
        return result.stdout

    def is_clean(self) -> bool:
        """Return *True* if the working tree has no uncommitted changes."""
        return self.status().strip() == ""

    def current_branch(self) -> str:
        """Return the name of the current branch."""
        result = _run_git("rev-parse", "--abbrev-ref", "HEAD", cwd=self.path)
        return result.stdout.strip()

    def status_matrix(self) -> list[StatusRow]:
        """Per-file ``(path, head, workdir, stage)`` rows, sorted by path.

        Unchanged tracked files appear as ``(path, 1, 1, 1)``.

        Raises
        ------
        RepositoryUnavailable
            If the repository is missing or git cannot report status.
        """
        if not self.is_repo():
            raise RepositoryUnavailable(f"No usable git repository at {self.path}")
        try:
            head_files: set[str] = set()
            if self.has_commits():
                out = _run_git("ls-tree", "-r", "--name-only", "-z", "HEAD", cwd=self.path)
                head_files = {p for p in out.stdout.split("\0") if p}
            out = _run_git("ls-files", "-z", cwd=self.path)
            index_files = {p for p in out.stdout.split("\0") if p}
            out = _run_git(
                "status", "--porcelain", "-z", "--untracked-files=all", "--no-renames",
                cwd=self.path,
            )
        except GitError as exc:
            raise RepositoryUnavailable(str(exc)) from exc

        rows: dict[str, StatusRow] = {}
        for entry in out.stdout.split("\0"):
            if len(entry) < 4:
                continue
            xy, path = entry[:2], entry[3:]
            row = _matrix_row(path, xy, path in head_files)
            # A staged deletion and an untracked copy report twice; keep the untracked view.
            if path not in rows or xy == "??":
                rows[path] = row

        for path in head_files | index_files:
            if path not in rows:
                rows[path] = (path, 1, 1, 1)

        return [rows[p] for p in sorted(rows)]

    # -- Stage / commit -------------------------------------------------------

    def stage(self, *paths: str | Path) -> None:
        """Stage one or more paths for commit, including deletions."""
        str_paths = [str(p) for p in paths]
        _run_git("add", "-A", "--", *str_paths, cwd=self.path)

    add = stage

    def commit(self, message: str, author: str | None = None) -> str:
        """Create a commit with the given message.

        Parameters
        ----------
        author:
            Optional ``"Name <email>"`` overriding the configured identity.

        Returns the full commit hash.
        """
        args = ["commit", "-m", message]
        if author:
            args.append(f"--author={author}")
        _run_git(*args, cwd=self.path)
        return self.head_commit()

    def head_commit(self) -> str:
        result = _run_git("rev-parse", "HEAD", cwd=self.path)
        return result.stdout.strip()
