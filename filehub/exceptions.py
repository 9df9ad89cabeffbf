"""Custom exception classes for FileHub."""


class FileHubException(Exception):
    """
    Base exception class for all FileHub errors.
    """
    pass


class UserAlreadyExistsError(FileHubException):
    """
    Raised when attempting to register a username that already exists.
    """
    pass


class InvalidCredentialsError(FileHubException):
    """
    Raised when login credentials are invalid.
    """
    pass


class InvalidSessionError(FileHubException):
    """
    Raised when a session token is unknown, logged out or expired.
    """
    pass


class UnauthorizedAccessError(FileHubException):
    """
    Raised when the caller is neither the owner nor holds a role allowed to act.
    """
    pass


class FileNotFoundError(FileHubException):
    """
    Raised when a requested file does not exist.
    """
    pass


class UserNotFoundError(FileHubException):
    """
    Raised when a requested user does not exist.
    """
    pass


class QuotaExceededError(FileHubException):
    """
    Raised when an upload would push a user's usage past their quota.
    """

    def __init__(self, user_id: str, quota_bytes: int, used_bytes: int, required_bytes: int):
        self.user_id = user_id
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes
        super().__init__(
            f"Quota exceeded: need {required_bytes} bytes, "
            f"{max(0, quota_bytes - used_bytes)} of {quota_bytes} available"
        )


class MissingChunkError(FileHubException):
    """
    Raised when a required chunk index has not been uploaded.
    """

    def __init__(self, file_id: str, chunk_index: int):
        self.file_id = file_id
        self.chunk_index = chunk_index
        super().__init__(f"File {file_id} is missing chunk {chunk_index}")


class NoChunksFoundError(FileHubException):
    """
    Raised when assembling a file yields no data at all.
    """
    pass


class ChunkChecksumMismatchError(FileHubException):
    """
    Raised when a stored chunk no longer matches the checksum recorded at write time.
    """

    def __init__(self, file_id: str, chunk_index: int):
        self.file_id = file_id
        self.chunk_index = chunk_index
        super().__init__(f"Checksum mismatch on chunk {chunk_index} of file {file_id}")


class InvalidChunkIndexError(FileHubException):
    """
    Raised when a chunk index falls outside [0, total_chunks).
    """
    pass


class UploadAlreadyCompleteError(FileHubException):
    """
    Raised when a chunk is submitted for a file that was already finalized.
    """
    pass


class InvalidRequestError(FileHubException):
    """
    Raised when request values are well-formed but not acceptable.
    """
    pass
