"""Fold per-repository results into a Summary."""

from typing import Mapping, Optional, Sequence

from ..domain.models import ExecutionResult, Repository, Summary


def aggregate_results(
    targets: Sequence[Repository],
    results_by_name: Mapping[str, ExecutionResult],
    started_at: float,
    repositories: Optional[Sequence[Repository]] = None,
) -> Summary:
    """Order results by target and compute the wall-clock duration.

    ``total_duration`` is the span from ``started_at`` to the last task end,
    not the sum of task durations. Every target must have a result.
    """
    missing = [repo.name for repo in targets if repo.name not in results_by_name]
    if missing:
        raise ValueError(f"missing results for: {', '.join(missing)}")

    ordered = tuple(results_by_name[repo.name] for repo in targets)
    last_end = max((result.finished_at for result in ordered), default=started_at)
    return Summary(
        results=ordered,
        total_duration=max(0.0, last_end - started_at),
        repositories=tuple(repositories or ()),
    )


__all__ = ["aggregate_results"]
