"""
SurgeryFacade: orchestrate one history edit end to end.

Pipeline:
1. Resolve references and validate ancestry (ReferenceResolver)
2. Enumerate the range and snapshot branch depths (BranchPositionTracker)
3. Validate the index/working tree and merges (PlanSynthesizer)
4. Create the temporary branch, commit staged changes if needed (RewriteExecutor);
   the checked-out branch is then tracked at the new commit
5. Synthesize the plan (PlanSynthesizer)
6. Rebase with the plan (RewriteExecutor)
7. Map depths onto the rewritten range (PostRewriteMapper)
8. Content gate, move branches, return to the original branch (BranchReconciler)

Steps 1-3 never mutate anything. From step 4 on, any failure or interrupt
runs RewriteExecutor.cleanup(restore=True).
"""

from typing import Optional

from splice.exceptions import DetachedHead, OperationInterrupted
from splice.git import GitRepository
from splice.logging_config import logger
from splice.schemas import Commit, OperationDescriptor, SurgeryResult
from splice.user_config import UserConfig

from .config import STAGED_PLACEHOLDER
from .executor import RewriteExecutor, staged_commit_message
from .mapper import PostRewriteMapper
from .planner import PlanSynthesizer
from .reconciler import BranchReconciler
from .resolver import ReferenceResolver
from .tracker import BranchPositionTracker


class SurgeryFacade:
    """
    Main entry point for fixup, amend, pick, drop and swap.

    Args:
        repo: Repository to operate on
        config: Optional configuration (defaults are used when omitted)
    """

    def __init__(self, repo: GitRepository, config: Optional[UserConfig] = None):
        self.repo = repo
        self.config = config or UserConfig(repo.path)

        self.resolver = ReferenceResolver(repo)
        self.tracker = BranchPositionTracker(repo)
        self.planner = PlanSynthesizer(repo)
        self.mapper = PostRewriteMapper(repo, pin_current_branch=self.config.get_bool("swap.pin_current_branch"))
        self.reconciler = BranchReconciler(repo)

        logger.debug("SurgeryFacade initialized")

    def _executor(self) -> RewriteExecutor:
        return RewriteExecutor(
            self.repo,
            temp_branch_prefix=self.config.get_str("rewrite.temp_branch_prefix"),
            keep_empty=self.config.get_bool("rewrite.keep_empty"),
        )

    def run(self, descriptor: OperationDescriptor, dry_run: bool = False) -> SurgeryResult:
        """
        Perform (or with dry_run, only plan) an operation.

        Args:
            descriptor: The requested operation
            dry_run: Stop after synthesizing the plan; nothing is mutated

        Returns:
            SurgeryResult describing the plan and every branch moved

        Raises:
            SpliceError: Any validation failure, conflict or rewrite error
        """
        logger.debug(f"Starting {descriptor.operation.value} on {descriptor.base}")

        original_branch = self.repo.current_branch()
        if original_branch is None:
            raise DetachedHead()

        refs = self.resolver.resolve_operation(descriptor)
        commit_range = self.tracker.enumerate(refs.base, refs.head)
        self.planner.validate(descriptor, commit_range)
        positions = self.tracker.track(commit_range, head_branch=original_branch)

        result = SurgeryResult(
            operation=descriptor.operation,
            branch=original_branch,
            original_head=refs.head,
            positions=positions,
            dry_run=dry_run,
        )

        if dry_run:
            target_sha = refs.target
            if target_sha is None:
                message, _ = staged_commit_message(self.repo, descriptor, refs.base)
                subject = message.splitlines()[0] if message else "<new commit from staged changes>"
                commit_range.append(Commit(sha=STAGED_PLACEHOLDER, parents=[refs.head], subject=subject))
                target_sha = STAGED_PLACEHOLDER
                result.positions = self.tracker.follow(positions, original_branch, len(commit_range) - 1)
            plan = self.planner.synthesize(descriptor, commit_range, target_sha)
            result.plan = plan.describe().splitlines()
            return result

        executor = self._executor()
        succeeded = False
        try:
            executor.begin(original_branch, refs.head, descriptor.operation)

            target_sha = refs.target
            if target_sha is None:
                created = executor.commit_staged(descriptor, refs.base)
                commit_range.append(created)
                target_sha = created.sha
                result.created_commit = created.sha
                positions = self.tracker.follow(positions, original_branch, len(commit_range) - 1)
                result.positions = positions

            plan = self.planner.synthesize(descriptor, commit_range, target_sha)
            result.plan = plan.describe().splitlines()

            new_head = executor.execute(plan, commit_range.upstream)
            mapping = self.mapper.remap(plan, positions, commit_range, new_head, original_branch)
            self.reconciler.reconcile(
                plan,
                executor.snapshot,
                new_head,
                mapping.moves,
                original_branch,
                executor.temp_branch,
            )

            result.new_head = new_head
            result.moves = mapping.moves
            result.lost_branches = [lost.branch for lost in mapping.lost]
            succeeded = True
        except KeyboardInterrupt:
            logger.error("Interrupted; restoring original state")
            raise OperationInterrupted() from None
        finally:
            executor.cleanup(restore=not succeeded)

        logger.info(
            f"{descriptor.operation.value} complete: {original_branch} now at {result.new_head[:12]}, "
            f"{len(result.moves)} branch(es) updated"
        )
        return result
