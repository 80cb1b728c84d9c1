"""
Tests for household resolution and invitations.

All collaborators are in-memory; no hosted backend is involved.
Async code is driven with asyncio.run.
"""

import asyncio
from datetime import datetime

import pytest

from grocery_tracker.audit import AuditLogger
from grocery_tracker.household import (
    AlreadyMemberError,
    ForbiddenError,
    HouseholdNotFoundError,
    InvalidRequestError,
    InvitationService,
    get_household_members,
    resolve_household_id,
)
from grocery_tracker.household import invites
from grocery_tracker.models.audit import AuditEventType
from grocery_tracker.models.household import User
from grocery_tracker.services.notifications import (
    ContactNotifierInterface,
    NotificationError,
)
from grocery_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryEntityStorage,
    StorageConnectionError,
)


def run(coro):
    return asyncio.run(coro)


class SpyStorage(InMemoryEntityStorage):
    """In-memory storage that counts filter calls."""

    def __init__(self, records=None):
        super().__init__(records)
        self.filter_calls = 0

    async def filter(self, criteria, sort=None, limit=None):
        self.filter_calls += 1
        return await super().filter(criteria, sort=sort, limit=limit)


class BrokenStorage(InMemoryEntityStorage):
    """Every call fails as if the backend were unreachable."""

    async def filter(self, criteria, sort=None, limit=None):
        raise StorageConnectionError("backend unreachable")

    async def get(self, entity_id):
        raise StorageConnectionError("backend unreachable")


class FlakyUserStorage(InMemoryEntityStorage):
    """get() blows up for selected ids with a non-NotFound error."""

    def __init__(self, records, failing_ids):
        super().__init__(records)
        self._failing_ids = set(failing_ids)

    async def get(self, entity_id):
        if entity_id in self._failing_ids:
            raise RuntimeError(f"profile service timeout for {entity_id}")
        return await super().get(entity_id)


class RecordingNotifier(ContactNotifierInterface):
    def __init__(self, fail: bool = False):
        self.calls = []
        self._fail = fail

    async def tag_contact(self, email, tags):
        self.calls.append((email, tags))
        if self._fail:
            raise NotificationError("email platform down")


class TestResolveHouseholdId:
    """Tests for resolve_household_id."""

    def test_no_user_resolves_to_none(self):
        """No authenticated user means no household, not an error."""
        assert run(resolve_household_id(None, InMemoryEntityStorage())) is None

    def test_user_household_id_is_authoritative(self):
        """A set household_id is returned without touching memberships."""
        memberships = SpyStorage([
            {"user_id": "u1", "household_id": "OTHER", "created_date": datetime(2024, 6, 1)},
        ])
        user = User(id="u1", email="a@example.com", household_id="H1")

        assert run(resolve_household_id(user, memberships)) == "H1"
        assert memberships.filter_calls == 0

    def test_blank_household_id_falls_back_to_memberships(self):
        """An empty household_id counts as absent."""
        memberships = InMemoryEntityStorage([
            {"user_id": "u1", "household_id": "H2", "created_date": datetime(2024, 1, 1)},
        ])
        user = User(id="u1", email="a@example.com", household_id="")

        assert run(resolve_household_id(user, memberships)) == "H2"

    def test_most_recent_membership_wins(self):
        """With several memberships, the newest one decides."""
        memberships = InMemoryEntityStorage([
            {"user_id": "u1", "household_id": "B", "created_date": datetime(2024, 5, 1)},
            {"user_id": "u1", "household_id": "A", "created_date": datetime(2024, 1, 1)},
            {"user_id": "u2", "household_id": "C", "created_date": datetime(2024, 9, 1)},
        ])
        user = User(id="u1", email="a@example.com")

        assert run(resolve_household_id(user, memberships)) == "B"

    def test_undated_membership_ranks_last(self):
        memberships = InMemoryEntityStorage([
            {"user_id": "u1", "household_id": "UNDATED", "created_date": None},
            {"user_id": "u1", "household_id": "DATED", "created_date": datetime(2023, 1, 1)},
        ])
        user = User(id="u1", email="a@example.com")

        assert run(resolve_household_id(user, memberships)) == "DATED"

    def test_no_memberships_resolves_to_none(self):
        user = User(id="u1", email="a@example.com")
        assert run(resolve_household_id(user, InMemoryEntityStorage())) is None

    def test_membership_lookup_failure_propagates(self):
        """Connectivity failures are not swallowed."""
        user = User(id="u1", email="a@example.com")
        with pytest.raises(StorageConnectionError):
            run(resolve_household_id(user, BrokenStorage()))

    def test_resolution_is_audited(self):
        """The source of the household id is recorded."""
        audit_storage = InMemoryAuditStorage()
        memberships = InMemoryEntityStorage([
            {"user_id": "u1", "household_id": "H9", "created_date": datetime(2024, 1, 1)},
        ])
        user = User(id="u1", email="a@example.com")

        run(resolve_household_id(user, memberships, audit_logger=AuditLogger(audit_storage)))

        event = audit_storage.events[0]
        assert event.event_type == AuditEventType.HOUSEHOLD_RESOLVED
        assert event.details["source"] == "membership"


class TestGetHouseholdMembers:
    """Tests for get_household_members."""

    def _memberships(self):
        return InMemoryEntityStorage([
            {"id": "m1", "user_id": "1", "household_id": "H", "created_date": datetime(2024, 1, 1)},
            {"id": "m2", "user_id": "2", "household_id": "H", "created_date": datetime(2024, 2, 1)},
            {"id": "m3", "user_id": "3", "household_id": "OTHER", "created_date": datetime(2024, 3, 1)},
        ])

    def test_no_memberships_gives_empty_result(self):
        result = run(get_household_members("H", InMemoryEntityStorage(), InMemoryEntityStorage()))
        assert result.memberships == []
        assert result.profiles == []

    def test_dangling_member_is_dropped(self):
        """A deleted user keeps the membership but loses the profile."""
        users = InMemoryEntityStorage([
            {"id": "1", "email": "one@example.com"},
        ])

        result = run(get_household_members("H", self._memberships(), users))

        assert len(result.memberships) == 2
        assert [p.id for p in result.profiles] == ["1"]
        assert result.profiles[0].email == "one@example.com"
        assert result.dropped_count == 1

    def test_undated_membership_is_kept(self):
        """A membership without created_date is still listed."""
        memberships = InMemoryEntityStorage([
            {"id": "m1", "user_id": "1", "household_id": "H", "created_date": datetime(2024, 1, 1)},
            {"id": "m2", "user_id": "2", "household_id": "H", "created_date": None},
        ])
        users = InMemoryEntityStorage([
            {"id": "1", "email": "one@example.com"},
            {"id": "2", "email": "two@example.com"},
        ])

        result = run(get_household_members("H", memberships, users))

        assert sorted(m.id for m in result.memberships) == ["m1", "m2"]
        assert sorted(p.id for p in result.profiles) == ["1", "2"]
        assert result.dropped_count == 0

    def test_profile_errors_are_tolerated(self):
        """Any profile failure, not just not-found, drops only that member."""
        users = FlakyUserStorage(
            [
                {"id": "1", "email": "one@example.com"},
                {"id": "2", "email": "two@example.com"},
            ],
            failing_ids=["1"],
        )

        result = run(get_household_members("H", self._memberships(), users))

        assert len(result.memberships) == 2
        assert [p.id for p in result.profiles] == ["2"]

    def test_dropped_member_is_audited(self):
        audit_storage = InMemoryAuditStorage()
        users = InMemoryEntityStorage([{"id": "1", "email": "one@example.com"}])

        run(get_household_members(
            "H", self._memberships(), users, audit_logger=AuditLogger(audit_storage)
        ))

        dropped = [
            e for e in audit_storage.events
            if e.event_type == AuditEventType.MEMBER_PROFILE_DROPPED
        ]
        assert len(dropped) == 1
        assert dropped[0].details["user_id"] == "2"

    def test_profiles_are_fetched_concurrently(self):
        """Every fetch is in flight before any of them completes."""

        class GatedUserStorage(InMemoryEntityStorage):
            def __init__(self, records, expected):
                super().__init__(records)
                self._expected = expected
                self._started = 0
                self._all_started = None

            async def get(self, entity_id):
                if self._all_started is None:
                    self._all_started = asyncio.Event()
                self._started += 1
                if self._started == self._expected:
                    self._all_started.set()
                await asyncio.wait_for(self._all_started.wait(), timeout=1)
                return await super().get(entity_id)

        users = GatedUserStorage(
            [
                {"id": "1", "email": "one@example.com"},
                {"id": "2", "email": "two@example.com"},
            ],
            expected=2,
        )

        result = run(get_household_members("H", self._memberships(), users))

        assert [p.id for p in result.profiles] == ["1", "2"]

    def test_membership_query_failure_propagates(self):
        with pytest.raises(StorageConnectionError):
            run(get_household_members("H", BrokenStorage(), InMemoryEntityStorage()))


class TestGenerateHouseholdCode:
    """Tests for invite code generation."""

    def _service(self, households, audit_storage=None):
        return InvitationService(
            households=households,
            users=InMemoryEntityStorage(),
            memberships=InMemoryEntityStorage(),
            audit_logger=AuditLogger(audit_storage) if audit_storage else None,
        )

    def test_requires_household_id(self):
        admin = User(id="admin", email="admin@example.com")
        with pytest.raises(InvalidRequestError, match="household_id is required"):
            run(self._service(InMemoryEntityStorage()).generate_household_code(admin, None))

    def test_unknown_household(self):
        admin = User(id="admin", email="admin@example.com")
        with pytest.raises(HouseholdNotFoundError):
            run(self._service(InMemoryEntityStorage()).generate_household_code(admin, "nope"))

    def test_only_admin_can_generate(self):
        households = InMemoryEntityStorage([{"id": "H", "name": "Home", "admin_id": "admin"}])
        member = User(id="someone", email="s@example.com")

        with pytest.raises(ForbiddenError) as exc_info:
            run(self._service(households).generate_household_code(member, "H"))
        assert exc_info.value.status_code == 403

    def test_existing_code_is_reused(self):
        households = InMemoryEntityStorage([
            {"id": "H", "name": "Home", "admin_id": "admin", "invite_code": "KEEPME"},
        ])
        admin = User(id="admin", email="admin@example.com")

        result = run(self._service(households).generate_household_code(admin, "H"))

        assert result.invite_code == "KEEPME"
        assert result.reused is True
        assert result.message == "Household already has an invite code"

    def test_new_code_is_generated_and_stored(self):
        households = InMemoryEntityStorage([{"id": "H", "name": "Home", "admin_id": "admin"}])
        admin = User(id="admin", email="admin@example.com")
        audit_storage = InMemoryAuditStorage()

        result = run(self._service(households, audit_storage).generate_household_code(admin, "H"))

        assert len(result.invite_code) == 6
        assert set(result.invite_code) <= set("ABCDEFGHJKLMNPQRSTUVWXYZ23456789")
        stored = run(households.get("H"))
        assert stored["invite_code"] == result.invite_code
        assert audit_storage.events[0].event_type == AuditEventType.INVITE_CODE_GENERATED

    def test_taken_codes_are_skipped(self, monkeypatch):
        households = InMemoryEntityStorage([
            {"id": "H", "name": "Home", "admin_id": "admin"},
            {"id": "H2", "name": "Other", "invite_code": "TAKEN2"},
        ])
        draws = iter(["TAKEN2", "FRESH3"])
        monkeypatch.setattr(invites, "generate_invite_code", lambda length, alphabet: next(draws))
        admin = User(id="admin", email="admin@example.com")

        result = run(self._service(households).generate_household_code(admin, "H"))

        assert result.invite_code == "FRESH3"


class TestJoinHouseholdByCode:
    """Tests for joining a household by invite code."""

    def _setup(self, household_tier="free", notifier=None):
        households = InMemoryEntityStorage([
            {
                "id": "H",
                "name": "The Flat",
                "admin_id": "admin",
                "invite_code": "ABC234",
                "subscription_tier": household_tier,
            },
        ])
        users = InMemoryEntityStorage([
            {"id": "u1", "email": "joiner@example.com", "tier": "plus"},
        ])
        memberships = InMemoryEntityStorage()
        audit_storage = InMemoryAuditStorage()
        service = InvitationService(
            households=households,
            users=users,
            memberships=memberships,
            notifier=notifier,
            audit_logger=AuditLogger(audit_storage),
        )
        return service, households, users, memberships, audit_storage

    def test_requires_invite_code(self):
        service, *_ = self._setup()
        user = User(id="u1", email="joiner@example.com")
        with pytest.raises(InvalidRequestError, match="invite_code is required"):
            run(service.join_household_by_code(user, "   "))

    def test_invalid_code(self):
        service, *_ = self._setup()
        user = User(id="u1", email="joiner@example.com")
        with pytest.raises(HouseholdNotFoundError, match="Invalid invitation code"):
            run(service.join_household_by_code(user, "ZZZZZZ"))

    def test_already_member(self):
        service, *_ = self._setup()
        user = User(id="u1", email="joiner@example.com", household_id="H")
        with pytest.raises(AlreadyMemberError):
            run(service.join_household_by_code(user, "ABC234"))

    def test_join_normalizes_code_and_links_user(self):
        """Codes are matched case-insensitively, ignoring surrounding blanks."""
        service, _, users, memberships, audit_storage = self._setup()
        user = User(id="u1", email="joiner@example.com", tier="free")

        result = run(service.join_household_by_code(user, "  abc234 "))

        assert result.household.id == "H"
        assert result.message == "Successfully joined The Flat!"
        assert run(users.get("u1"))["household_id"] == "H"
        links = run(memberships.filter({"user_id": "u1"}))
        assert [m["household_id"] for m in links] == ["H"]
        assert any(
            e.event_type == AuditEventType.HOUSEHOLD_JOINED for e in audit_storage.events
        )

    def test_contact_is_tagged(self):
        notifier = RecordingNotifier()
        service, *_ = self._setup(notifier=notifier)
        user = User(id="u1", email="joiner@example.com", tier="free")

        result = run(service.join_household_by_code(user, "ABC234"))

        assert notifier.calls == [("joiner@example.com", ["household_joined"])]
        assert result.notification_sent is True

    def test_tagging_failure_is_not_critical(self):
        """The join succeeds even when the email platform is down."""
        notifier = RecordingNotifier(fail=True)
        service, _, users, _, audit_storage = self._setup(notifier=notifier)
        user = User(id="u1", email="joiner@example.com", tier="free")

        result = run(service.join_household_by_code(user, "ABC234"))

        assert result.notification_sent is False
        assert run(users.get("u1"))["household_id"] == "H"
        assert any(
            e.event_type == AuditEventType.NOTIFICATION_FAILED for e in audit_storage.events
        )

    def test_better_tier_upgrades_household(self):
        """Blended billing: a plus member lifts a free household to plus."""
        service, households, *_ = self._setup(household_tier="free")
        user = User(id="u1", email="joiner@example.com", tier="plus")

        result = run(service.join_household_by_code(user, "ABC234"))

        stored = run(households.get("H"))
        assert result.upgraded_tier == "plus"
        assert stored["subscription_tier"] == "plus"
        assert stored["household_scan_limit"] == 30

    def test_worse_tier_leaves_household_alone(self):
        service, households, *_ = self._setup(household_tier="standard")
        user = User(id="u1", email="joiner@example.com", tier="free_trial")

        result = run(service.join_household_by_code(user, "ABC234"))

        stored = run(households.get("H"))
        assert result.upgraded_tier is None
        assert stored["subscription_tier"] == "standard"
        assert "household_scan_limit" not in stored


class TestInviteCodeHelpers:
    def test_generate_invite_code_uses_alphabet(self):
        code = invites.generate_invite_code(8, "AB")
        assert len(code) == 8
        assert set(code) <= {"A", "B"}

    def test_normalize_invite_code(self):
        assert invites.normalize_invite_code("  xy7k2p\n") == "XY7K2P"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
