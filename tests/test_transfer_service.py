"""Tests for chunked upload, download, deletion and sharing."""

import threading

import pytest

from filehub.auth import generate_session_token
from filehub.database import get_db_connection
from filehub.exceptions import (
    ChunkChecksumMismatchError,
    FileNotFoundError,
    InvalidChunkIndexError,
    InvalidRequestError,
    MissingChunkError,
    NoChunksFoundError,
    QuotaExceededError,
    UnauthorizedAccessError,
    UploadAlreadyCompleteError,
)
from filehub.repositories.session_repository import SessionRepository
from filehub.repositories.user_repository import UserRepository
from filehub.types import UploadStatus
from filehub.utils import format_share_link, utcnow

MB = 1_000_000


def _session_for(identity):
    token = generate_session_token()
    SessionRepository.create_session(token, identity.user_id, utcnow())
    return token


def _init(transfer, identity, total_size, total_chunks, filename="movie.mp4"):
    return transfer.init_upload(
        identity,
        filename=filename,
        mime_type="video/mp4",
        total_size=total_size,
        total_chunks=total_chunks,
    )


class TestUploadLifecycle:

    def test_out_of_order_chunks_report_running_count(self, transfer, alice):
        file_id = _init(transfer, alice, 6, 3)

        assert transfer.upload_chunk(alice, file_id, 1, b"BB") == 1
        assert transfer.upload_chunk(alice, file_id, 0, b"AA") == 2
        assert transfer.upload_chunk(alice, file_id, 2, b"CC") == 3

        metadata = transfer.finalize_upload(alice, file_id)
        assert metadata.status == UploadStatus.COMPLETE

        token = _session_for(alice)
        assert transfer.download_file(file_id, session_token=token).data == b"AABBCC"

    def test_resent_chunk_is_counted_once(self, transfer, alice):
        file_id = _init(transfer, alice, 4, 2)

        assert transfer.upload_chunk(alice, file_id, 0, b"xx") == 1
        assert transfer.upload_chunk(alice, file_id, 0, b"AA") == 1
        assert transfer.upload_chunk(alice, file_id, 1, b"BB") == 2

    def test_quota_is_enforced_and_reclaimed(self, transfer, make_user):
        user = make_user("quota-user", quota_bytes=10 * MB)
        chunks = [bytes([index + 1]) * (2 * MB) for index in range(3)]

        file_id = _init(transfer, user, 6 * MB, 3)
        counts = [transfer.upload_chunk(user, file_id, index, chunks[index]) for index in (1, 0, 2)]
        assert counts == [1, 2, 3]

        transfer.finalize_upload(user, file_id)
        assert UserRepository.get_by_user_id(user.user_id).used_bytes == 6 * MB

        downloaded = transfer.download_file(file_id, session_token=_session_for(user)).data
        assert downloaded == b"".join(chunks)

        with pytest.raises(QuotaExceededError):
            _init(transfer, user, 6 * MB, 3, filename="second.mp4")

        transfer.delete_file(user, file_id)
        assert UserRepository.get_by_user_id(user.user_id).used_bytes == 0

        _init(transfer, user, 6 * MB, 3, filename="second.mp4")

    def test_finalize_reports_lowest_missing_chunk(self, transfer, alice):
        file_id = _init(transfer, alice, 4, 4)
        transfer.upload_chunk(alice, file_id, 0, b"a")
        transfer.upload_chunk(alice, file_id, 3, b"d")

        with pytest.raises(MissingChunkError) as exc_info:
            transfer.finalize_upload(alice, file_id)
        assert exc_info.value.chunk_index == 1

        user = UserRepository.get_by_user_id(alice.user_id)
        assert user.used_bytes == 0

    def test_finalize_twice_credits_once(self, transfer, alice):
        file_id = _init(transfer, alice, 3, 1)
        transfer.upload_chunk(alice, file_id, 0, b"abc")

        transfer.finalize_upload(alice, file_id)
        metadata = transfer.finalize_upload(alice, file_id)

        assert metadata.status == UploadStatus.COMPLETE
        assert UserRepository.get_by_user_id(alice.user_id).used_bytes == 3

    def test_chunk_after_finalize_rejected(self, transfer, alice):
        file_id = _init(transfer, alice, 3, 1)
        transfer.upload_chunk(alice, file_id, 0, b"abc")
        transfer.finalize_upload(alice, file_id)

        with pytest.raises(UploadAlreadyCompleteError):
            transfer.upload_chunk(alice, file_id, 0, b"xyz")

    def test_chunk_index_out_of_range(self, transfer, alice):
        file_id = _init(transfer, alice, 3, 1)

        with pytest.raises(InvalidChunkIndexError):
            transfer.upload_chunk(alice, file_id, 1, b"abc")
        with pytest.raises(InvalidChunkIndexError):
            transfer.upload_chunk(alice, file_id, -1, b"abc")

    def test_invalid_init_values(self, transfer, alice):
        with pytest.raises(InvalidRequestError):
            _init(transfer, alice, -1, 1)
        with pytest.raises(InvalidRequestError):
            _init(transfer, alice, 1, 1, filename="")

    def test_chunk_for_unknown_file(self, transfer, alice):
        with pytest.raises(FileNotFoundError):
            transfer.upload_chunk(alice, "missing", 0, b"x")


class TestDownload:

    def test_owner_downloads_assembled_file(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"hello ", b"world"])
        token = _session_for(alice)

        result = transfer.download_file(file_id, session_token=token)

        assert result.data == b"hello world"
        assert result.filename == "data.bin"

    def test_streamed_download_yields_chunks_in_order(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"1", b"2", b"3"])
        token = _session_for(alice)

        metadata, chunks = transfer.open_download(file_id, session_token=token)

        assert metadata.total_chunks == 3
        assert b"".join(chunks) == b"123"

    def test_incomplete_file_reports_missing_chunk(self, transfer, alice):
        file_id = _init(transfer, alice, 2, 2)
        transfer.upload_chunk(alice, file_id, 0, b"a")
        token = _session_for(alice)

        with pytest.raises(MissingChunkError) as exc_info:
            transfer.open_download(file_id, session_token=token)
        assert exc_info.value.chunk_index == 1

    def test_empty_file_has_no_chunks(self, transfer, alice):
        file_id = _init(transfer, alice, 0, 0)
        transfer.finalize_upload(alice, file_id)
        token = _session_for(alice)

        with pytest.raises(NoChunksFoundError):
            transfer.open_download(file_id, session_token=token)

    def test_zero_byte_chunks_have_no_data(self, transfer, alice):
        file_id = _init(transfer, alice, 0, 1)
        transfer.upload_chunk(alice, file_id, 0, b"")
        transfer.finalize_upload(alice, file_id)
        token = _session_for(alice)

        with pytest.raises(NoChunksFoundError):
            transfer.open_download(file_id, session_token=token)
        with pytest.raises(NoChunksFoundError):
            transfer.download_file(file_id, session_token=token)

    def test_corrupted_chunk_is_refused(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"good", b"data"])
        with get_db_connection() as conn:
            conn.execute(
                "UPDATE chunks SET data = ? WHERE file_id = ? AND chunk_index = ?",
                (b"evil", file_id, 1)
            )
            conn.commit()
        token = _session_for(alice)

        with pytest.raises(ChunkChecksumMismatchError):
            transfer.get_file_chunk(file_id, 1, session_token=token)
        with pytest.raises(ChunkChecksumMismatchError):
            transfer.download_file(file_id, session_token=token)

    def test_single_chunk_retrieval(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"aa", b"bb"])
        token = _session_for(alice)

        assert transfer.get_file_chunk(file_id, 1, session_token=token) == b"bb"
        with pytest.raises(InvalidChunkIndexError):
            transfer.get_file_chunk(file_id, 2, session_token=token)

    def test_anonymous_download_without_share_token_denied(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"secret"])

        with pytest.raises(UnauthorizedAccessError):
            transfer.download_file(file_id)

    def test_unknown_session_token_denied(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"secret"])

        with pytest.raises(UnauthorizedAccessError):
            transfer.download_file(file_id, session_token="fh_bogus")


class TestAuthorization:

    def test_other_client_cannot_touch_file(self, transfer, alice, bob, upload_file):
        file_id = upload_file(alice, [b"mine"])

        with pytest.raises(UnauthorizedAccessError):
            transfer.delete_file(bob, file_id)
        with pytest.raises(UnauthorizedAccessError):
            transfer.generate_share_link(bob, file_id)
        with pytest.raises(UnauthorizedAccessError):
            transfer.download_file(file_id, session_token=_session_for(bob))

    def test_other_client_cannot_upload_chunks(self, transfer, alice, bob):
        file_id = _init(transfer, alice, 2, 1)

        with pytest.raises(UnauthorizedAccessError):
            transfer.upload_chunk(bob, file_id, 0, b"xx")
        with pytest.raises(UnauthorizedAccessError):
            transfer.finalize_upload(bob, file_id)

    def test_staff_and_master_act_on_any_file(self, transfer, alice, staff, master, upload_file):
        file_id = upload_file(alice, [b"data"])

        staff_token = _session_for(staff)
        assert transfer.download_file(file_id, session_token=staff_token).data == b"data"

        transfer.delete_file(master, file_id)
        with pytest.raises(FileNotFoundError):
            transfer.get_file_metadata(file_id, session_token=staff_token)

    def test_listing_scope(self, transfer, alice, bob, staff, upload_file):
        upload_file(alice, [b"a"])
        upload_file(bob, [b"b"])

        assert len(transfer.list_files(alice)) == 1
        assert len(transfer.list_files(staff)) == 2


class TestSharing:

    def test_share_token_grants_anonymous_access(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"shared"])
        share_token = transfer.generate_share_link(alice, file_id)

        assert transfer.download_file(file_id, share_token=share_token).data == b"shared"

    def test_share_token_is_stable(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"shared"])

        assert transfer.generate_share_link(alice, file_id) == transfer.generate_share_link(alice, file_id)

    def test_share_token_is_bound_to_its_file(self, transfer, alice, upload_file):
        first = upload_file(alice, [b"one"])
        second = upload_file(alice, [b"two"], filename="two.bin")
        share_token = transfer.generate_share_link(alice, first)

        with pytest.raises(UnauthorizedAccessError):
            transfer.download_file(second, share_token=share_token)

    def test_wrong_share_token_denied(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"shared"])
        transfer.generate_share_link(alice, file_id)

        with pytest.raises(UnauthorizedAccessError):
            transfer.download_file(file_id, share_token="guess")

    def test_open_share_link(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"ab", b"cd"])
        share_token = transfer.generate_share_link(alice, file_id)

        metadata, chunks = transfer.open_share_link(format_share_link(file_id, share_token))

        assert metadata.file_id == file_id
        assert b"".join(chunks) == b"abcd"

    def test_malformed_share_link(self, transfer):
        with pytest.raises(FileNotFoundError):
            transfer.open_share_link("no-separator")

    def test_share_link_dies_with_file(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"gone"])
        share_token = transfer.generate_share_link(alice, file_id)
        transfer.delete_file(alice, file_id)

        with pytest.raises(FileNotFoundError):
            transfer.download_file(file_id, share_token=share_token)


class TestConcurrentUploads:

    def test_parallel_chunk_puts_all_land(self, transfer, alice):
        total_chunks = 30
        file_id = _init(transfer, alice, total_chunks, total_chunks)
        counts = []
        errors = []

        def put(index):
            try:
                counts.append(transfer.upload_chunk(alice, file_id, index, bytes([index])))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=put, args=(index,)) for index in range(total_chunks)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert sorted(counts) == list(range(1, total_chunks + 1))
        assert transfer.registry.chunk_repo.count(file_id, total_chunks) == total_chunks

        transfer.finalize_upload(alice, file_id)
        token = _session_for(alice)
        assert transfer.download_file(file_id, session_token=token).data == bytes(range(total_chunks))

    def test_parallel_finalize_credits_once(self, transfer, alice):
        file_id = _init(transfer, alice, 6, 2)
        transfer.upload_chunk(alice, file_id, 0, b"abc")
        transfer.upload_chunk(alice, file_id, 1, b"def")
        statuses = []
        errors = []

        def finalize():
            try:
                statuses.append(transfer.finalize_upload(alice, file_id).status)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=finalize) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert statuses == [UploadStatus.COMPLETE] * 8

        user = UserRepository.get_by_user_id(alice.user_id)
        assert user.used_bytes == 6
        assert user.reserved_bytes == 0


class TestDeletion:

    def test_delete_reclaims_quota_and_second_delete_fails(self, transfer, alice, upload_file):
        file_id = upload_file(alice, [b"12345"])
        assert UserRepository.get_by_user_id(alice.user_id).used_bytes == 5

        transfer.delete_file(alice, file_id)

        assert UserRepository.get_by_user_id(alice.user_id).used_bytes == 0
        with pytest.raises(FileNotFoundError):
            transfer.delete_file(alice, file_id)

    def test_pending_delete_leaves_usage_untouched(self, transfer, alice, upload_file):
        upload_file(alice, [b"12345"])
        pending_id = _init(transfer, alice, 100, 1)

        transfer.delete_file(alice, pending_id)

        user = UserRepository.get_by_user_id(alice.user_id)
        assert user.used_bytes == 5
        assert user.reserved_bytes == 0


def test_share_link_with_foreign_token(transfer, alice, upload_file):
    first = upload_file(alice, [b"one"])
    second = upload_file(alice, [b"two"], filename="two.bin")
    share_token = transfer.generate_share_link(alice, first)

    with pytest.raises(FileNotFoundError):
        transfer.open_share_link(format_share_link(second, share_token))
