"""Error taxonomy for the patch engine. Each error knows its HTTP status and JSON shape."""


class PatchError(Exception):
    """Base exception for all guarded-patch failures."""

    status = 500

    def __init__(self, message: str, **details) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.message, **self.details}


class ValidationError(PatchError):
    """Missing or malformed input, invalid mode."""

    status = 400


class UnknownZoneError(ValidationError):
    def __init__(self, zone: str) -> None:
        super().__init__(f"Unknown zone: {zone}", zone=zone)


class MarkerNotFoundError(PatchError):
    """The zone marker is gone from the file: the file drifted, the caller did nothing wrong."""

    status = 400

    def __init__(self, zone: str, target_file: str) -> None:
        super().__init__(
            f"Insertion marker not found for zone '{zone}' in {target_file}",
            zone=zone,
            targetFile=target_file,
        )


class NotAllowlistedError(PatchError):
    status = 403


class TargetNotFoundError(PatchError):
    status = 404

    def __init__(self, target_file: str) -> None:
        super().__init__("Target file not found", targetFile=target_file)


class DuplicateApplyError(PatchError):
    status = 409

    def __init__(self, proposal_hash: str) -> None:
        super().__init__(
            "This proposalHash was already applied (duplicate prevented).",
            proposalHash=proposal_hash,
        )


class BackupError(PatchError):
    """Backup failed; the destructive write must not happen."""

    status = 500


class LockTimeoutError(PatchError):
    status = 503

    def __init__(self, path: str, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout}s waiting for lock on {path}", targetFile=path)


class StoreError(PatchError):
    """The event store could not answer a question the write path depends on."""

    status = 503


class AuthError(PatchError):
    status = 401


class MisconfiguredError(PatchError):
    status = 500
