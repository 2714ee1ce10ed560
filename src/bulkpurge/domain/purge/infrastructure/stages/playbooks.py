"""Playbook cleanup (stages 5 to 8).

Runs and playbooks only qualify as "empty" once the memberships of
deleted users are gone, so the member stage has to run first. The
dangling data stage then sweeps whatever still points at a missing run,
playbook, metric config or channel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from bulkpurge.domain.purge.infrastructure import schema as s
from bulkpurge.domain.purge.infrastructure.batch_deleter import CascadePlan, DependentDelete
from bulkpurge.domain.purge.infrastructure.stages.base import (
    CascadeStage,
    ConditionalDeleteStage,
    children_missing,
    parent_missing,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Executable


class DanglingPlaybookMembersStage(ConditionalDeleteStage):
    """Playbook rows keyed by a deleted user.

    Category items go before their categories.
    """

    name = "dangling playbook members"

    def statements(self) -> Sequence[tuple[str, Executable]]:
        user_id = s.users.c.id
        orphan_categories = select(s.ir_category.c.id).where(
            parent_missing(s.ir_category.c.userid, user_id)
        )
        return [
            (
                "ir_category_item",
                delete(s.ir_category_item).where(
                    s.ir_category_item.c.categoryid.in_(orphan_categories)
                ),
            ),
            (
                "ir_category",
                delete(s.ir_category).where(parent_missing(s.ir_category.c.userid, user_id)),
            ),
            (
                "ir_playbookautofollow",
                delete(s.ir_playbookautofollow).where(
                    parent_missing(s.ir_playbookautofollow.c.userid, user_id)
                ),
            ),
            (
                "ir_playbookmember",
                delete(s.ir_playbookmember).where(
                    parent_missing(s.ir_playbookmember.c.memberid, user_id)
                ),
            ),
            (
                "ir_run_participants",
                delete(s.ir_run_participants).where(
                    parent_missing(s.ir_run_participants.c.userid, user_id)
                ),
            ),
            (
                "ir_viewedchannel",
                delete(s.ir_viewedchannel).where(
                    parent_missing(s.ir_viewedchannel.c.userid, user_id)
                ),
            ),
            (
                "ir_userinfo",
                delete(s.ir_userinfo).where(parent_missing(s.ir_userinfo.c.id, user_id)),
            ),
        ]


class EmptyRunsStage(CascadeStage):
    """Playbook runs with no participants, with their metrics, status posts and timeline."""

    name = "empty playbook runs"

    def plan(self) -> CascadePlan:
        runs = s.ir_incident
        return CascadePlan(
            name=self.name,
            candidates=select(runs.c.id)
            .where(children_missing(runs.c.id, s.ir_run_participants.c.incidentid))
            .order_by(runs.c.id),
            dependents=(
                DependentDelete(
                    "ir_metric",
                    lambda ids: delete(s.ir_metric).where(s.ir_metric.c.incidentid.in_(ids)),
                ),
                DependentDelete(
                    "ir_statusposts",
                    lambda ids: delete(s.ir_statusposts).where(
                        s.ir_statusposts.c.incidentid.in_(ids)
                    ),
                ),
                DependentDelete(
                    "ir_timelineevent",
                    lambda ids: delete(s.ir_timelineevent).where(
                        s.ir_timelineevent.c.incidentid.in_(ids)
                    ),
                ),
            ),
            delete_candidates=lambda ids: delete(runs).where(runs.c.id.in_(ids)),
        )


class EmptyPlaybooksStage(CascadeStage):
    """Playbooks with no members, with their metric configs and auto-follows."""

    name = "empty playbooks"

    def plan(self) -> CascadePlan:
        playbooks = s.ir_playbook
        return CascadePlan(
            name=self.name,
            candidates=select(playbooks.c.id)
            .where(children_missing(playbooks.c.id, s.ir_playbookmember.c.playbookid))
            .order_by(playbooks.c.id),
            dependents=(
                DependentDelete(
                    "ir_metricconfig",
                    lambda ids: delete(s.ir_metricconfig).where(
                        s.ir_metricconfig.c.playbookid.in_(ids)
                    ),
                ),
                DependentDelete(
                    "ir_playbookautofollow",
                    lambda ids: delete(s.ir_playbookautofollow).where(
                        s.ir_playbookautofollow.c.playbookid.in_(ids)
                    ),
                ),
            ),
            delete_candidates=lambda ids: delete(playbooks).where(playbooks.c.id.in_(ids)),
        )


class DanglingPlaybookDataStage(ConditionalDeleteStage):
    """Playbook-adjacent rows whose run, playbook, metric config or channel is gone."""

    name = "dangling playbook data"

    def statements(self) -> Sequence[tuple[str, Executable]]:
        run_id = s.ir_incident.c.id
        return [
            (
                "ir_metric",
                delete(s.ir_metric).where(parent_missing(s.ir_metric.c.incidentid, run_id)),
            ),
            (
                "ir_statusposts",
                delete(s.ir_statusposts).where(
                    parent_missing(s.ir_statusposts.c.incidentid, run_id)
                ),
            ),
            (
                "ir_timelineevent",
                delete(s.ir_timelineevent).where(
                    parent_missing(s.ir_timelineevent.c.incidentid, run_id)
                ),
            ),
            (
                "ir_metricconfig",
                delete(s.ir_metricconfig).where(
                    parent_missing(s.ir_metricconfig.c.playbookid, s.ir_playbook.c.id)
                ),
            ),
            # metrics whose config went with an empty playbook
            (
                "ir_metric",
                delete(s.ir_metric).where(
                    parent_missing(s.ir_metric.c.metricconfigid, s.ir_metricconfig.c.id)
                ),
            ),
            (
                "ir_channelaction",
                delete(s.ir_channelaction).where(
                    parent_missing(s.ir_channelaction.c.channelid, s.channels.c.id)
                ),
            ),
        ]
