"""Tests for the per-user storage ledger."""

import threading

import pytest

from filehub.exceptions import QuotaExceededError, UserNotFoundError
from filehub.repositories.user_repository import UserRepository
from filehub.services.file_registry import FileRegistry
from filehub.services.quota_service import QuotaLedger


@pytest.fixture
def small_user(make_user):
    return make_user("small", quota_bytes=100)


class TestReserveMode:

    def test_upload_of_exactly_remaining_quota_succeeds(self, small_user):
        ledger = QuotaLedger(mode="reserve")
        ledger.check_and_reserve(small_user.user_id, 60)
        ledger.check_and_reserve(small_user.user_id, 40)

        with pytest.raises(QuotaExceededError) as exc_info:
            ledger.check_and_reserve(small_user.user_id, 1)
        assert exc_info.value.required_bytes == 1
        assert exc_info.value.quota_bytes == 100

    def test_credit_turns_reservation_into_usage(self, small_user):
        ledger = QuotaLedger(mode="reserve")
        ledger.check_and_reserve(small_user.user_id, 70)
        ledger.credit(small_user.user_id, 70)

        user = UserRepository.get_by_user_id(small_user.user_id)
        assert user.used_bytes == 70
        assert user.reserved_bytes == 0
        assert ledger.stats(small_user.user_id).used_bytes == 70

    def test_release_reservation(self, small_user):
        ledger = QuotaLedger(mode="reserve")
        ledger.check_and_reserve(small_user.user_id, 100)
        ledger.release_reservation(small_user.user_id, 100)

        ledger.check_and_reserve(small_user.user_id, 100)

    def test_concurrent_inits_never_overshoot(self, small_user):
        ledger = QuotaLedger(mode="reserve")
        admitted = []
        rejected = []

        def reserve():
            try:
                ledger.check_and_reserve(small_user.user_id, 20)
                admitted.append(1)
            except QuotaExceededError:
                rejected.append(1)

        threads = [threading.Thread(target=reserve) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(admitted) == 5
        assert len(rejected) == 5
        assert UserRepository.get_by_user_id(small_user.user_id).reserved_bytes == 100


class TestCheckMode:

    def test_check_compares_against_used_bytes(self, small_user):
        ledger = QuotaLedger(mode="check")
        UserRepository.add_used(small_user.user_id, 90)

        ledger.check_and_reserve(small_user.user_id, 10)
        with pytest.raises(QuotaExceededError):
            ledger.check_and_reserve(small_user.user_id, 11)

    def test_two_pending_uploads_can_jointly_exceed_quota(self, small_user):
        """Both inits pass because nothing is held until finalize."""
        registry = FileRegistry(ledger=QuotaLedger(mode="check"))

        first = registry.create(small_user.user_id, "a.bin", "application/octet-stream", 60, 1)
        second = registry.create(small_user.user_id, "b.bin", "application/octet-stream", 60, 1)
        for file in (first, second):
            registry.put_chunk(file.file_id, 0, b"x" * 60)
            registry.finalize(file.file_id)

        stats = QuotaLedger(mode="check").stats(small_user.user_id)
        assert stats.used_bytes == 120
        assert stats.used_bytes > stats.quota

    def test_same_race_is_rejected_in_reserve_mode(self, small_user):
        registry = FileRegistry(ledger=QuotaLedger(mode="reserve"))

        registry.create(small_user.user_id, "a.bin", "application/octet-stream", 60, 1)
        with pytest.raises(QuotaExceededError):
            registry.create(small_user.user_id, "b.bin", "application/octet-stream", 60, 1)

    def test_release_reservation_is_noop(self, small_user):
        ledger = QuotaLedger(mode="check")
        UserRepository.try_reserve(small_user.user_id, 10)

        ledger.release_reservation(small_user.user_id, 10)

        assert UserRepository.get_by_user_id(small_user.user_id).reserved_bytes == 10


class TestLedgerCommon:

    def test_release_never_goes_negative(self, small_user):
        ledger = QuotaLedger(mode="reserve")
        ledger.release(small_user.user_id, 50)

        assert ledger.stats(small_user.user_id).used_bytes == 0

    def test_unknown_user(self, test_db):
        ledger = QuotaLedger(mode="reserve")

        with pytest.raises(UserNotFoundError):
            ledger.check_and_reserve("ghost", 1)
        with pytest.raises(UserNotFoundError):
            ledger.stats("ghost")

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            QuotaLedger(mode="optimistic")
