"""Named user deletion (stage 1).

For each target user, in order:

1. Ask the account service to permanently delete the account. Anything
   but 200 aborts the stage at once; users processed earlier stay deleted.
2. Remove the user's post graph with the batch cursor deleter. The
   account service can leave posts behind, so this runs even when the
   service reports success.

One progress tick is yielded per fully processed user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import delete, or_, select

from bulkpurge.domain.purge.infrastructure import schema as s
from bulkpurge.domain.purge.infrastructure.batch_deleter import CascadePlan, DependentDelete
from bulkpurge.foundation.domain.exceptions import ExternalServiceError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from bulkpurge.domain.purge.infrastructure.batch_deleter import BatchCursorDeleter
    from bulkpurge.foundation.domain.user_value_objects import TargetUser

logger = logging.getLogger(__name__)


class AccountService(Protocol):
    """Remote capability that permanently deletes accounts."""

    async def delete_user(self, user_id: str) -> int: ...


@dataclass(frozen=True, slots=True)
class UserDeleted:
    """Tick emitted after one user and their post graph are gone."""

    user: TargetUser
    completed: int
    posts_deleted: int


def user_post_graph_plan(user_id: str) -> CascadePlan:
    """Cascade plan for every post authored by ``user_id``.

    Dependents of a batch of post ids: their threads, thread memberships,
    reactions (including reactions on replies), then the replies
    themselves.
    """
    posts = s.posts

    def replies_of(ids: Sequence[str]):
        return select(posts.c.id).where(posts.c.rootid.in_(ids))

    return CascadePlan(
        name="user posts",
        candidates=select(posts.c.id).where(posts.c.userid == user_id).order_by(posts.c.id),
        dependents=(
            DependentDelete(
                "threads", lambda ids: delete(s.threads).where(s.threads.c.postid.in_(ids))
            ),
            DependentDelete(
                "threadmemberships",
                lambda ids: delete(s.threadmemberships).where(
                    s.threadmemberships.c.postid.in_(ids)
                ),
            ),
            DependentDelete(
                "reactions",
                lambda ids: delete(s.reactions).where(
                    or_(s.reactions.c.postid.in_(ids), s.reactions.c.postid.in_(replies_of(ids)))
                ),
            ),
            DependentDelete("replies", lambda ids: delete(posts).where(posts.c.rootid.in_(ids))),
        ),
        delete_candidates=lambda ids: delete(posts).where(posts.c.id.in_(ids)),
    )


class UserDeletionStage:
    """Deletes named users through the account service, then their posts.

    Not a :class:`~.base.Stage`: it is driven by the target set and
    reports progress per user instead of returning a row count.

    Args:
        accounts: Account service client.
        deleter: Batch cursor deleter used for the post graph.
    """

    name = "delete users"

    def __init__(self, accounts: AccountService, deleter: BatchCursorDeleter) -> None:
        self._accounts = accounts
        self._deleter = deleter

    async def run(self, users: Sequence[TargetUser]) -> AsyncIterator[UserDeleted]:
        """Delete ``users`` in order, yielding after each one.

        Raises:
            ExternalServiceError: The account service returned anything but 200.
            TransactionError: A post graph batch failed.
        """
        for completed, user in enumerate(users, start=1):
            status_code = await self._accounts.delete_user(user.id)
            if status_code != HTTPStatus.OK:
                raise ExternalServiceError("account", "delete user", status_code, user.email)

            result = await self._deleter.run(user_post_graph_plan(user.id))
            logger.info(
                "user_deleted",
                extra={"email": user.email, "posts_deleted": result.total_deleted},
            )
            yield UserDeleted(user=user, completed=completed, posts_deleted=result.total_deleted)
