"""Git repository operations."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

logger = logging.getLogger(__name__)

REMOTE = "origin"
TRUNK_NAMES = ("master", "main")
TAG_BATCH_SIZE = 100


class GitError(Exception):
    """Git operation error."""


class NoTrunkFoundError(GitError):
    """Neither trunk name exists on the remote."""

    def __init__(self) -> None:
        super().__init__(f"Neither 'master' nor 'main' branch found in {REMOTE}.")


class FetchFailedError(GitError):
    """Fetching the trunk from the remote failed."""


class ForceUpdateFailedError(GitError):
    """Moving the local trunk pointer to the remote tip failed."""


class MergeFailedError(GitError):
    """A merge returned a non-zero exit status."""


class CheckoutFailedError(GitError):
    """Switching to or creating a branch failed."""


class CheckoutOutcome(Enum):
    """How the target branch of a checkout was reached."""

    MERGED = "merged"
    CREATED = "created"


@dataclass(frozen=True)
class CheckoutResult:
    """Result of checking out or creating a branch."""

    branch: str
    base: str
    outcome: CheckoutOutcome


class GitRepo:
    """Git repository operations."""

    def __init__(self, path: Path) -> None:
        """Initialize repository."""
        try:
            self.repo: Repo = Repo(path)
            if self.repo.bare:
                raise GitError("Cannot operate on bare repository")
        except (GitCommandError, ValueError, InvalidGitRepositoryError, NoSuchPathError) as err:
            raise GitError(f"Failed to open repository: {err}") from err

    def ref_exists(self, ref: str) -> bool:
        """Check whether a reference resolves to a commit."""
        try:
            self.repo.git.rev_parse("--verify", "--quiet", ref)
            return True
        except GitCommandError:
            return False

    def branch_exists(self, branch: str) -> bool:
        """Check whether a local branch exists."""
        return self.ref_exists(f"refs/heads/{branch}")

    def resolve_trunk(self) -> str:
        """Return the trunk branch name, preferring master over main.

        Raises:
            NoTrunkFoundError: If neither origin/master nor origin/main exists
        """
        for name in TRUNK_NAMES:
            if self.ref_exists(f"{REMOTE}/{name}"):
                logger.debug("Resolved trunk to %s", name)
                return name
        raise NoTrunkFoundError()

    def get_current_branch_name(self) -> str:
        """Get current branch name."""
        try:
            try:
                return self.repo.active_branch.name
            except TypeError:
                # Detached HEAD has no branch to protect or merge into
                return ""
        except (GitCommandError, ValueError) as err:
            raise GitError(f"Failed to get current branch: {err}") from err

    def update_trunk(self) -> str:
        """Bring the local trunk up to date with the remote.

        The trunk is fetched without tags while pruning stale remote-tracking
        refs. When the trunk is checked out, the fetched tip is merged into
        it; otherwise the local trunk pointer is moved to the fetched tip
        without touching the working tree.

        Returns:
            The trunk name

        Raises:
            NoTrunkFoundError: If no trunk exists on the remote
            FetchFailedError: If the fetch fails
            MergeFailedError: If merging into the checked-out trunk fails
            ForceUpdateFailedError: If moving the local trunk pointer fails
        """
        trunk = self.resolve_trunk()
        remote_trunk = f"{REMOTE}/{trunk}"

        logger.debug("git fetch %s %s --no-tags --prune", REMOTE, trunk)
        try:
            self.repo.git.fetch(REMOTE, trunk, "--no-tags", "--prune")
        except GitCommandError as err:
            raise FetchFailedError(f"Failed to fetch {remote_trunk}") from err

        if self.get_current_branch_name() == trunk:
            logger.debug("git merge %s", remote_trunk)
            try:
                self.repo.git.merge(remote_trunk)
            except GitCommandError as err:
                raise MergeFailedError(f"Failed to merge {remote_trunk} into {trunk}") from err
        else:
            logger.debug("git branch -f %s %s", trunk, remote_trunk)
            try:
                self.repo.git.branch("-f", trunk, remote_trunk)
            except GitCommandError as err:
                raise ForceUpdateFailedError(f"Failed to force-update local {trunk} to {remote_trunk}") from err

        return trunk

    def merge_into_current(self, ref: str) -> str:
        """Merge a reference into the checked-out branch.

        Returns:
            The name of the branch that received the merge
        """
        current = self.get_current_branch_name()
        if not current:
            raise MergeFailedError(f"Cannot merge {ref}: HEAD is detached")
        logger.debug("git merge %s --no-edit (on %s)", ref, current)
        try:
            self.repo.git.merge(ref, "--no-edit")
        except GitCommandError as err:
            raise MergeFailedError(f"Failed to merge {ref} into {current}") from err
        return current

    def checkout_or_create(self, branch: str, base: str) -> CheckoutResult:
        """Check out a branch, creating it off base when it does not exist.

        An existing branch is checked out and base is merged into it. A
        conflicting merge leaves HEAD on the target with the merge in progress.
        """
        if self.branch_exists(branch):
            logger.debug("git checkout %s", branch)
            try:
                self.repo.git.checkout(branch)
            except GitCommandError as err:
                raise CheckoutFailedError(f"Failed to check out {branch}") from err
            self.merge_into_current(base)
            return CheckoutResult(branch, base, CheckoutOutcome.MERGED)

        logger.debug("git checkout -b %s %s", branch, base)
        try:
            self.repo.git.checkout("-b", branch, base)
        except GitCommandError as err:
            raise CheckoutFailedError(f"Failed to create {branch} off {base}") from err
        return CheckoutResult(branch, base, CheckoutOutcome.CREATED)

    def list_local_branches(self) -> list[str]:
        """List local branch names."""
        return [head.name for head in self.repo.heads]

    def list_remote_tracking_branches(self) -> list[str]:
        """List remote-tracking branches under the origin namespace."""
        try:
            branches = self.repo.git.branch("-r", "--format=%(refname:short)").splitlines()
        except GitCommandError as err:
            raise GitError(f"Failed to list remote branches: {err}") from err
        # origin/HEAD shortens to "origin" and is a symbolic ref, not a branch
        return [b for b in branches if b.startswith(f"{REMOTE}/") and not b.endswith("/HEAD")]

    def list_tags(self) -> list[str]:
        """List local tag names."""
        try:
            return self.repo.git.tag().splitlines()
        except GitCommandError as err:
            raise GitError(f"Failed to list tags: {err}") from err

    def list_branch_names(self) -> list[str]:
        """List local and remote branch names with the remote prefix stripped."""
        try:
            refs = self.repo.git.for_each_ref(
                "--format=%(refname:short)", "refs/heads", f"refs/remotes/{REMOTE}"
            ).splitlines()
        except GitCommandError as err:
            raise GitError(f"Failed to list branches: {err}") from err
        names = set()
        for ref in refs:
            if ref == REMOTE or ref.endswith("/HEAD"):
                continue
            if ref.startswith(f"{REMOTE}/"):
                ref = ref[len(REMOTE) + 1 :]
            names.add(ref)
        return sorted(names)

    def delete_local_branches(self) -> tuple[list[str], list[str]]:
        """Force-delete every local branch except the trunks and the current branch.

        Returns:
            A tuple of (deleted, failed) branch names
        """
        current = self.get_current_branch_name()
        protected = {*TRUNK_NAMES, current}
        deleted, failed = [], []
        for branch in self.list_local_branches():
            if branch in protected:
                continue
            logger.debug("git branch -D %s", branch)
            try:
                self.repo.git.branch("-D", branch)
                deleted.append(branch)
            except GitCommandError:
                failed.append(branch)
        return deleted, failed

    def delete_remote_tracking_branches(self) -> tuple[list[str], list[str]]:
        """Delete remote-tracking branches except origin/master and origin/main.

        Deletion is best effort: a failure on one branch does not stop the rest.

        Returns:
            A tuple of (deleted, failed) branch names
        """
        protected = {f"{REMOTE}/{name}" for name in TRUNK_NAMES}
        deleted, failed = [], []
        for branch in self.list_remote_tracking_branches():
            if branch in protected:
                continue
            logger.debug("git branch -r -d %s", branch)
            try:
                self.repo.git.branch("-r", "-d", branch)
                deleted.append(branch)
            except GitCommandError:
                failed.append(branch)
        return deleted, failed

    def delete_tags(self, batch_size: int = TAG_BATCH_SIZE) -> tuple[list[str], list[str]]:
        """Delete all local tags, at most batch_size names per git call.

        Returns:
            A tuple of (deleted, failed) tag names
        """
        tags = self.list_tags()
        deleted, failed = [], []
        for start in range(0, len(tags), batch_size):
            batch = tags[start : start + batch_size]
            logger.debug("git tag -d (%d tags)", len(batch))
            try:
                self.repo.git.tag("-d", *batch)
                deleted.extend(batch)
            except GitCommandError:
                failed.extend(batch)
        return deleted, failed

    def passthrough(self, command: str, *args: str) -> str:
        """Run a git command with arguments forwarded unchanged.

        Returns:
            stdout followed by stderr, since commands like push report on stderr
        """
        logger.debug("git %s %s", command, " ".join(args))
        try:
            _, stdout, stderr = self.repo.git.execute(["git", command, *args], with_extended_output=True)
            return "\n".join(part for part in (stdout, stderr) if part)
        except GitCommandError as err:
            raise GitError(f"git {command} failed: {err}") from err
