"""dulwich-backed query engine.

DulwichEngine is the production QueryEngine. It owns no cache of its own:
every call goes to the object store, index and working tree on disk. dulwich
exceptions are translated into the nanogit EngineError hierarchy at this
boundary so that callers never see engine-specific types.

dulwich Repo handles are not shared between threads; each thread lazily
opens its own handle and close() releases all of them.
"""

import os
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Final, Self, cast

from dulwich import porcelain
from dulwich.diff_tree import (
    CHANGE_ADD,
    CHANGE_COPY,
    CHANGE_DELETE,
    CHANGE_RENAME,
    CHANGE_UNCHANGED,
    RenameDetector,
    TreeChange,
    tree_changes,
)
from dulwich.errors import (
    ChecksumMismatch,
    MissingCommitError,
    NotGitRepository,
    ObjectFormatException,
)
from dulwich.file import FileLocked
from dulwich.ignore import IgnoreFilterManager
from dulwich.index import IndexEntry, commit_tree
from dulwich.object_store import tree_lookup_path
from dulwich.objects import Commit, Tag
from dulwich.repo import Repo

from nanogit.exceptions import (
    EngineError,
    NotARepositoryError,
    RepositoryConflictError,
    RepositoryCorruptedError,
    RepositoryIOError,
    RepositoryLockedError,
)
from nanogit.repository._models import DiffScope, DiffTarget, LogRange
from nanogit.repository._raw import (
    RawChange,
    RawChangeType,
    RawCommit,
    RawFileDiff,
    RawRefs,
    RawState,
    RawStatus,
)

# Similarity threshold for rename detection (0-100 scale for dulwich)
_RENAME_THRESHOLD: Final = 60

# Git SHA length in hexadecimal characters
_SHA_HEX_LENGTH: Final = 40

# Minimum length for abbreviated SHA resolution
_MIN_SHA_ABBREV_LENGTH: Final = 4

_GIT_DIR: Final = ".git"

_REF_NAMESPACES: Final = (b"refs/heads/", b"refs/remotes/")

_REVISION_PREFIXES: Final = (b"", b"refs/heads/", b"refs/tags/", b"refs/remotes/")

_CHANGE_TYPES: Final[dict[str, RawChangeType]] = {
    CHANGE_ADD: "add",
    CHANGE_COPY: "add",
    CHANGE_DELETE: "delete",
    CHANGE_RENAME: "rename",
}


@contextmanager
def _engine_errors(root: Path) -> Iterator[None]:
    """Translate dulwich and filesystem exceptions into EngineError."""
    try:
        yield
    except EngineError:
        raise
    except NotGitRepository as exc:
        msg = f"Not a git repository: {root}"
        raise NotARepositoryError(msg, path=root) from exc
    except FileLocked as exc:
        msg = f"Repository is locked by another process: {root}"
        raise RepositoryLockedError(msg, path=root) from exc
    except (ObjectFormatException, ChecksumMismatch, MissingCommitError) as exc:
        msg = f"Repository object store is corrupted: {exc}"
        raise RepositoryCorruptedError(msg, path=root) from exc
    except KeyError as exc:
        msg = f"Missing object in repository: {exc}"
        raise RepositoryCorruptedError(msg, path=root) from exc
    except OSError as exc:
        msg = f"Repository I/O failed: {exc}"
        raise RepositoryIOError(msg, path=root) from exc


def _as_bytes(path: bytes | str) -> bytes:
    if isinstance(path, str):
        return path.encode("utf-8")
    return path


def discover_root(start: Path) -> Path:
    """Find the working tree root of the repository containing start.

    Raises:
        NotARepositoryError: If no repository contains start.
    """
    with _engine_errors(start):
        repo = Repo.discover(str(start))
        try:
            return Path(repo.path).resolve()
        finally:
            repo.close()


def _path_matches(path: bytes, prefixes: Sequence[bytes]) -> bool:
    return any(path == prefix or path.startswith(prefix + b"/") for prefix in prefixes)


class DulwichEngine:
    """QueryEngine implementation over a dulwich repository on disk.

    Example:
        >>> with DulwichEngine.discover(Path.cwd()) as engine:
        ...     raw = engine.read_status()
    """

    __slots__: Final = ("_closed", "_handles", "_handles_lock", "_local", "_root")

    def __init__(self, path: Path) -> None:
        """Open the repository whose working tree root is path.

        Args:
            path: Working tree root directory.

        Raises:
            NotARepositoryError: If path is not a non-bare repository root.
        """
        self._root: Path = path.resolve()
        self._local: threading.local = threading.local()
        self._handles: list[Repo] = []
        self._handles_lock: threading.Lock = threading.Lock()
        self._closed: bool = False
        repo = self._repo()
        if repo.bare:
            self.close()
            msg = f"Bare repositories have no working tree: {self._root}"
            raise NotARepositoryError(msg, path=self._root)

    @classmethod
    def discover(cls, start: Path) -> Self:
        """Open the repository containing start.

        Walks up from start until a repository is found.

        Args:
            start: A path at or below the working tree root.

        Returns:
            Engine for the discovered repository.

        Raises:
            NotARepositoryError: If no repository contains start.
        """
        return cls(discover_root(start))

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _repo(self) -> Repo:
        repo = cast("Repo | None", getattr(self._local, "repo", None))
        if repo is None:
            self._raise_if_closed()
            with _engine_errors(self._root):
                repo = Repo(str(self._root))
            with self._handles_lock:
                if self._closed:
                    repo.close()
                    self._raise_if_closed()
                self._handles.append(repo)
            self._local.repo = repo
        return repo

    def _raise_if_closed(self) -> None:
        if self._closed:
            msg = f"Engine is closed: {self._root}"
            raise RuntimeError(msg)

    @property
    def root(self) -> Path:
        """Root directory of the working tree."""
        return self._root

    def close(self) -> None:
        """Close every Repo handle opened by any thread.

        Any later query raises RuntimeError.
        """
        with self._handles_lock:
            self._closed = True
            handles, self._handles = self._handles, []
        for repo in handles:
            repo.close()
        self._local = threading.local()

    # =========================================================================
    # Fingerprint Signals
    # =========================================================================

    def read_state(self, *, scan_worktree: bool = True) -> RawState:
        """Read HEAD, refs, index stat and optionally working-tree stat data."""
        repo = self._repo()
        with _engine_errors(self._root):
            head_ref, head_sha = self._read_head(repo)
            refs = tuple(sorted(repo.refs.as_dict().items()))
            try:
                st = os.stat(repo.index_path())
            except FileNotFoundError:
                index_stat = None
            else:
                index_stat = (st.st_mtime_ns, st.st_size, st.st_ino)
            worktree = self._scan_worktree(repo) if scan_worktree else ()
        return RawState(
            head_ref=head_ref,
            head_sha=head_sha,
            index_stat=index_stat,
            refs=refs,
            worktree=worktree,
        )

    def _read_head(self, repo: Repo) -> tuple[bytes | None, bytes | None]:
        refnames, sha = repo.refs.follow(b"HEAD")
        head_ref = refnames[-1] if len(refnames) > 1 else None
        return head_ref, sha

    def _scan_worktree(self, repo: Repo) -> tuple[tuple[bytes, int, int], ...]:
        entries: list[tuple[bytes, int, int]] = []
        for path in repo.open_index().paths():
            try:
                st = os.lstat(self._root / os.fsdecode(path))
            except FileNotFoundError:
                entries.append((path, -1, -1))
            else:
                entries.append((path, st.st_mtime_ns, st.st_size))
        # Directory mtimes change when entries are created or removed, which
        # is how new untracked files show up. Ignored directories cannot hold
        # untracked files; tracked files in them are covered by the index pass.
        ignore = IgnoreFilterManager.from_repo(repo)
        for dirpath, dirnames, _filenames in os.walk(self._root):
            rel = os.path.relpath(dirpath, self._root)
            prefix = "" if rel == os.curdir else Path(rel).as_posix() + "/"
            dirnames[:] = [
                name
                for name in dirnames
                if name != _GIT_DIR and not ignore.is_ignored(f"{prefix}{name}/")
            ]
            try:
                st = os.stat(dirpath)
            except FileNotFoundError:
                continue
            entries.append((os.fsencode(rel) + b"/", st.st_mtime_ns, 0))
        return tuple(entries)

    # =========================================================================
    # Status
    # =========================================================================

    def read_status(self) -> RawStatus:
        """Scan staged changes (with renames), unstaged and untracked paths."""
        repo = self._repo()
        with _engine_errors(self._root):
            staged = tuple(
                raw
                for change in self._staged_changes(repo, detect_renames=True)
                if (raw := self._to_raw_change(change)) is not None
            )
            scan = porcelain.status(repo, untracked_files="all")
            unstaged = tuple(
                sorted(_as_bytes(p) for p in scan.unstaged)  # pyright: ignore[reportUnknownVariableType,reportUnknownArgumentType,reportUnknownMemberType]
            )
            untracked = tuple(
                sorted(_as_bytes(p) for p in scan.untracked)  # pyright: ignore[reportUnknownVariableType,reportUnknownArgumentType,reportUnknownMemberType]
            )
        missing = frozenset(
            path for path in unstaged if not (self._root / os.fsdecode(path)).exists()
        )
        return RawStatus(
            staged=staged, unstaged=unstaged, missing=missing, untracked=untracked
        )

    def _head_tree(self, repo: Repo) -> bytes | None:
        _, head_sha = self._read_head(repo)
        if head_sha is None:
            return None
        commit = repo[head_sha]
        if not isinstance(commit, Commit):
            msg = f"HEAD does not point to a commit: {head_sha.decode('ascii')}"
            raise RepositoryCorruptedError(msg, path=self._root)
        return commit.tree

    def _index_tree(self, repo: Repo) -> bytes:
        index = repo.open_index()
        blobs: list[tuple[bytes, bytes, int]] = []
        for path, entry in index.items():
            # Skip conflicted entries (they don't have sha/mode attributes)
            if isinstance(entry, IndexEntry):
                blobs.append((path, entry.sha, entry.mode))
        return commit_tree(repo.object_store, blobs)

    def _staged_changes(
        self, repo: Repo, *, detect_renames: bool
    ) -> Iterator[TreeChange]:
        rename_detector = (
            RenameDetector(repo.object_store, rename_threshold=_RENAME_THRESHOLD)
            if detect_renames
            else None
        )
        yield from tree_changes(
            repo.object_store,
            self._head_tree(repo),
            self._index_tree(repo),
            rename_detector=rename_detector,
        )

    def _to_raw_change(self, change: TreeChange) -> RawChange | None:
        if change.type == CHANGE_UNCHANGED:
            return None
        return RawChange(
            type=_CHANGE_TYPES.get(change.type, "modify"),
            old_path=change.old.path if change.old else None,
            new_path=change.new.path if change.new else None,
        )

    # =========================================================================
    # Diff
    # =========================================================================

    def compute_diff(self, scope: DiffScope) -> tuple[RawFileDiff, ...]:
        """Collect both sides of every changed file within scope."""
        repo = self._repo()
        with _engine_errors(self._root):
            match scope.target:
                case DiffTarget.STAGED:
                    diffs = self._staged_diff(repo, scope)
                case DiffTarget.UNSTAGED:
                    diffs = self._unstaged_diff(repo, scope)
                case DiffTarget.HEAD:
                    diffs = self._head_diff(repo, scope)
        return tuple(
            sorted(
                diffs,
                key=lambda diff: diff.change.new_path or diff.change.old_path or b"",
            )
        )

    def _in_scope(self, scope: DiffScope, change: RawChange) -> bool:
        return any(
            path is not None and scope.matches(os.fsdecode(path))
            for path in (change.old_path, change.new_path)
        )

    def _blob_content(self, repo: Repo, sha: bytes | None) -> bytes:
        if sha is None:
            return b""
        data: bytes = getattr(repo[sha], "data", b"")
        return data

    def _worktree_content(self, path: bytes) -> bytes | None:
        target = self._root / os.fsdecode(path)
        if not target.is_file():
            return None
        return target.read_bytes()

    def _staged_diff(self, repo: Repo, scope: DiffScope) -> list[RawFileDiff]:
        diffs: list[RawFileDiff] = []
        for change in self._staged_changes(repo, detect_renames=True):
            raw = self._to_raw_change(change)
            if raw is None or not self._in_scope(scope, raw):
                continue
            diffs.append(
                RawFileDiff(
                    change=raw,
                    old_content=self._blob_content(
                        repo, change.old.sha if change.old else None
                    ),
                    new_content=self._blob_content(
                        repo, change.new.sha if change.new else None
                    ),
                )
            )
        return diffs

    def _unstaged_diff(self, repo: Repo, scope: DiffScope) -> list[RawFileDiff]:
        scan = porcelain.status(repo, untracked_files="no")
        index = repo.open_index()
        diffs: list[RawFileDiff] = []
        for item in scan.unstaged:  # pyright: ignore[reportUnknownVariableType,reportUnknownMemberType]
            path = _as_bytes(item)  # pyright: ignore[reportUnknownArgumentType]
            if not scope.matches(os.fsdecode(path)) or path not in index:
                continue
            entry = index[path]
            # Skip conflicted entries
            if not isinstance(entry, IndexEntry):
                continue
            working = self._worktree_content(path)
            diffs.append(
                RawFileDiff(
                    change=RawChange(
                        type="modify" if working is not None else "delete",
                        old_path=path,
                        new_path=path if working is not None else None,
                    ),
                    old_content=self._blob_content(repo, entry.sha),
                    new_content=working or b"",
                )
            )
        return diffs

    def _head_diff(self, repo: Repo, scope: DiffScope) -> list[RawFileDiff]:
        # Only paths whose index or working copy differs from HEAD can differ.
        candidates: set[bytes] = set()
        for change in self._staged_changes(repo, detect_renames=False):
            if change.old and change.old.path:
                candidates.add(change.old.path)
            if change.new and change.new.path:
                candidates.add(change.new.path)
        scan = porcelain.status(repo, untracked_files="no")
        candidates.update(_as_bytes(p) for p in scan.unstaged)  # pyright: ignore[reportUnknownVariableType,reportUnknownArgumentType,reportUnknownMemberType]

        head_tree = self._head_tree(repo)
        diffs: list[RawFileDiff] = []
        for path in candidates:
            if not scope.matches(os.fsdecode(path)):
                continue
            old = self._tree_blob(repo, head_tree, path)
            new = self._worktree_content(path)
            if old is None and new is None:
                continue
            if old is None:
                change = RawChange(type="add", old_path=None, new_path=path)
            elif new is None:
                change = RawChange(type="delete", old_path=path, new_path=None)
            elif old == new:
                continue
            else:
                change = RawChange(type="modify", old_path=path, new_path=path)
            diffs.append(
                RawFileDiff(
                    change=change, old_content=old or b"", new_content=new or b""
                )
            )
        return diffs

    def _tree_blob(self, repo: Repo, tree: bytes | None, path: bytes) -> bytes | None:
        if tree is None:
            return None
        try:
            _, sha = tree_lookup_path(repo.__getitem__, tree, path)
        except KeyError:
            return None
        return self._blob_content(repo, sha)

    # =========================================================================
    # Refs and History
    # =========================================================================

    def list_refs(self) -> RawRefs:
        """Read HEAD and every local and remote-tracking branch."""
        repo = self._repo()
        with _engine_errors(self._root):
            head_ref, head_sha = self._read_head(repo)
            refs = tuple(
                sorted(
                    (name, sha)
                    for name, sha in repo.refs.as_dict().items()
                    if name.startswith(_REF_NAMESPACES)
                )
            )
        return RawRefs(head_ref=head_ref, head_sha=head_sha, refs=refs)

    def read_log(self, log_range: LogRange) -> tuple[bytes, ...]:
        """Walk history and return commit ids, newest first.

        Raises:
            ValueError: If a revision in the range cannot be resolved.
        """
        repo = self._repo()
        with _engine_errors(self._root):
            include = [
                sha
                for revision in log_range.include
                if (sha := self._resolve_revision(repo, revision)) is not None
            ]
            if not include:
                return ()
            exclude = [
                sha
                for revision in log_range.exclude
                if (sha := self._resolve_revision(repo, revision)) is not None
            ]
            walker = repo.get_walker(
                include=include,
                exclude=exclude or None,
                max_entries=log_range.max_entries,
                paths=None
                if "." in log_range.paths
                else [path.encode("utf-8") for path in log_range.paths] or None,
            )
            return tuple(entry.commit.id for entry in walker)

    def _resolve_revision(self, repo: Repo, revision: str) -> bytes | None:
        """Resolve a revision to a commit id.

        Accepts HEAD, branch, tag and remote-tracking branch names as well as
        full or abbreviated (at least 4 characters) commit SHAs.

        Returns:
            Commit id as hex bytes, or None for an unborn HEAD.

        Raises:
            ValueError: If the revision is unknown or ambiguous.
        """
        if revision == "HEAD":
            _, head_sha = self._read_head(repo)
            return head_sha

        name = revision.encode("utf-8")
        for prefix in _REVISION_PREFIXES:
            candidate = prefix + name
            if candidate in repo.refs:
                return self._peel(repo, repo.refs[candidate])

        return self._resolve_abbreviated_sha(repo, revision)

    def _peel(self, repo: Repo, sha: bytes) -> bytes:
        obj = repo[sha]
        while isinstance(obj, Tag):
            _, target = obj.object
            obj = repo[target]
        return obj.id

    def _resolve_abbreviated_sha(self, repo: Repo, sha: str) -> bytes:
        if len(sha) < _MIN_SHA_ABBREV_LENGTH:
            msg = f"Unknown revision: {sha}"
            raise ValueError(msg)

        sha_lower = sha.lower().encode("ascii", errors="replace")
        if len(sha) == _SHA_HEX_LENGTH:
            if sha_lower in repo.object_store and isinstance(repo[sha_lower], Commit):
                return sha_lower
            msg = f"Unknown revision: {sha}"
            raise ValueError(msg)

        matches = [
            obj_sha
            for obj_sha in repo.object_store
            if obj_sha.startswith(sha_lower) and isinstance(repo[obj_sha], Commit)
        ]
        if not matches:
            msg = f"Unknown revision: {sha}"
            raise ValueError(msg)
        if len(matches) > 1:
            msg = f"Ambiguous SHA prefix: {sha} (matches {len(matches)} commits)"
            raise ValueError(msg)
        return matches[0]

    def read_commit(self, sha: bytes) -> RawCommit:
        """Read commit metadata and count the files it changed."""
        repo = self._repo()
        with _engine_errors(self._root):
            commit = repo[sha]
            if not isinstance(commit, Commit):
                msg = f"Object is not a commit: {sha.decode('ascii')}"
                raise RepositoryCorruptedError(msg, path=self._root)
            parent_tree: bytes | None = None
            if commit.parents:
                parent = repo[commit.parents[0]]
                parent_tree = cast("Commit", parent).tree
            files_changed = sum(
                1 for _ in tree_changes(repo.object_store, parent_tree, commit.tree)
            )
        return RawCommit(
            sha=commit.id,
            author=commit.author,
            author_time=commit.author_time,
            author_timezone=commit.author_timezone,
            message=commit.message,
            parents=tuple(commit.parents),
            files_changed=files_changed,
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    def apply_stage(self, paths: Sequence[str]) -> None:
        """Add existing paths to the index and drop missing ones from it."""
        repo = self._repo()
        with _engine_errors(self._root):
            present = [path for path in paths if (self._root / path).exists()]
            missing = [path.encode("utf-8") for path in paths if path not in present]
            if missing:
                index = repo.open_index()
                for indexed in list(index.paths()):
                    if _path_matches(indexed, missing):
                        del index[indexed]
                index.write()
            if present:
                _ = porcelain.add(
                    repo, paths=[str(self._root / path) for path in present]
                )

    def apply_unstage(self, paths: Sequence[str]) -> None:
        """Reset index entries under paths to the HEAD tree.

        Entries absent from HEAD are removed from the index. Restored
        entries carry zeroed stat data, so the next status scan rehashes the
        working copy instead of trusting cached stat information.
        """
        repo = self._repo()
        prefixes = [path.encode("utf-8") for path in paths]
        with _engine_errors(self._root):
            head_tree = self._head_tree(repo)
            head_entries: dict[bytes, tuple[int, bytes]] = {}
            if head_tree is not None:
                for entry in repo.object_store.iter_tree_contents(head_tree):
                    if entry.path is not None and _path_matches(entry.path, prefixes):
                        head_entries[entry.path] = (entry.mode or 0, entry.sha or b"")

            index = repo.open_index()
            indexed = [path for path in index.paths() if _path_matches(path, prefixes)]
            for path in indexed:
                if path not in head_entries:
                    del index[path]
            for path, (mode, sha) in head_entries.items():
                index[path] = IndexEntry(
                    ctime=(0, 0),
                    mtime=(0, 0),
                    dev=0,
                    ino=0,
                    mode=mode,
                    uid=0,
                    gid=0,
                    size=0,
                    sha=sha,
                    flags=0,
                )
            index.write()

    def create_commit(self, message: bytes, author: bytes) -> bytes | None:
        """Commit the index on top of HEAD with race detection.

        Captures HEAD before committing and verifies that the new commit's
        parent matches it, which detects another process committing between
        the two steps.

        Note:
            Race detection is post-facto: the commit object already exists
            when the conflict is reported.

        Raises:
            RepositoryConflictError: If HEAD moved during the commit. The
                exception's details carry the SHA of the new commit.
        """
        repo = self._repo()
        with _engine_errors(self._root):
            _, head_before = self._read_head(repo)
            head_tree = self._head_tree(repo)
            if head_tree is None:
                if not list(repo.open_index().paths()):
                    return None
            elif self._index_tree(repo) == head_tree:
                return None

            commit_sha: bytes = porcelain.commit(
                repo, message=message, author=author, committer=author
            )
            parents = cast("Commit", repo[commit_sha]).parents

        if head_before is not None:
            if not parents or parents[0] != head_before:
                actual_parent = parents[0].decode("ascii") if parents else "none"
                msg = (
                    "Concurrent modification detected: expected parent="
                    f"{head_before.decode('ascii')}, got parent={actual_parent}"
                )
                raise RepositoryConflictError(
                    msg,
                    path=self._root,
                    details=f"Commit SHA: {commit_sha.decode('ascii')}",
                )
        elif parents:
            msg = "Concurrent modification: expected no parent for initial commit"
            raise RepositoryConflictError(
                msg,
                path=self._root,
                details=f"Commit SHA: {commit_sha.decode('ascii')}",
            )
        return commit_sha
