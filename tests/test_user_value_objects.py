"""Tests for target users and email matching."""

from __future__ import annotations

import pytest

from bulkpurge.foundation.domain.user_value_objects import (
    TargetUser,
    email_matches,
    filter_users_by_emails,
)


@pytest.mark.unit
class TestTargetUser:
    def test_from_api(self) -> None:
        user = TargetUser.from_api(
            {"id": "u1", "email": "a@old.test", "roles": "system_user", "delete_at": 1700}
        )

        assert user == TargetUser(id="u1", email="a@old.test", roles="system_user", delete_at=1700)
        assert user.is_active is False

    def test_from_api_defaults(self) -> None:
        user = TargetUser.from_api({"id": "u1"})

        assert user.email == ""
        assert user.is_active is True

    def test_as_dict_round_trips_through_from_api(self) -> None:
        user = TargetUser(id="u1", email="a@old.test", roles="system_admin", delete_at=5)

        assert TargetUser.from_api(user.as_dict()) == user

    def test_system_admin_role(self) -> None:
        assert TargetUser(id="a", email="", roles="system_user system_admin").is_system_admin
        assert not TargetUser(id="b", email="", roles="system_user").is_system_admin
        # whole-word role match
        assert not TargetUser(id="c", email="", roles="not_system_admin").is_system_admin


@pytest.mark.unit
class TestEmailMatching:
    def test_suffix_match(self) -> None:
        user = TargetUser(id="u", email="alice@old.test")

        assert email_matches(user, ["@old.test"], [])
        assert not email_matches(user, ["@new.test"], [])

    def test_exact_match(self) -> None:
        user = TargetUser(id="u", email="alice@old.test")

        assert email_matches(user, [], ["alice@old.test"])
        assert not email_matches(user, [], ["bob@old.test"])

    def test_nothing_configured_matches_nobody(self) -> None:
        assert not email_matches(TargetUser(id="u", email="alice@old.test"), [], [])

    def test_filter_skips_admins_and_keeps_order(self) -> None:
        users = [
            TargetUser(id="1", email="b@old.test"),
            TargetUser(id="2", email="admin@old.test", roles="system_admin"),
            TargetUser(id="3", email="keep@new.test"),
            TargetUser(id="4", email="a@old.test"),
            TargetUser(id="5", email="vip@new.test"),
        ]

        selected = filter_users_by_emails(users, ["@old.test"], ["vip@new.test"])

        assert [u.id for u in selected] == ["1", "4", "5"]
