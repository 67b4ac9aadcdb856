"""Tracked code operations and code id generation."""

import secrets
import string
from datetime import datetime

from qrtrack_shared import TrackedCode, TrackedCodeReplace, utcnow

from app.core.exceptions import CodeNotFoundError, CodeValidationError
from app.services.storage import CodeRepository

# Characters for random code ids (base62)
CODE_ID_CHARS = string.ascii_lowercase + string.ascii_uppercase + string.digits
CODE_ID_LENGTH = 10

TRACKING_PATH = "/track"


def generate_code_id(length: int = CODE_ID_LENGTH) -> str:
    """Generate a random code id using base62 characters."""
    return "".join(secrets.choice(CODE_ID_CHARS) for _ in range(length))


def generate_unique_code_id(
    existing: set[str],
    max_attempts: int = 10,
) -> str:
    """Generate a code id not present in `existing`.

    Raises RuntimeError if unable to find one after max_attempts.
    """
    for _ in range(max_attempts):
        code_id = generate_code_id()
        if code_id not in existing:
            return code_id
    raise RuntimeError("Unable to generate unique code id")


def build_tracking_url(base_url: str, code_id: str) -> str:
    """Indirection URL encoded into the QR image for `code_id`."""
    return f"{base_url.rstrip('/')}{TRACKING_PATH}/{code_id}"


def _require(value: str, field: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise CodeValidationError(f"{field} must not be empty")
    return cleaned


async def create_code(
    repository: CodeRepository,
    name: str,
    target_url: str,
    base_url: str,
    now: datetime | None = None,
) -> TrackedCode:
    """Create a tracked code with no scans.

    Inputs are validated before the store is touched.
    """
    name = _require(name, "name")
    target_url = _require(target_url, "target_url")

    async with repository.transaction() as codes:
        code_id = generate_unique_code_id({code.id for code in codes})
        code = TrackedCode(
            id=code_id,
            name=name,
            target_url=target_url,
            tracking_url=build_tracking_url(base_url, code_id),
            created_at=now or utcnow(),
        )
        codes.append(code)
    return code


async def list_codes(repository: CodeRepository) -> list[TrackedCode]:
    """All tracked codes in creation order."""
    return await repository.load_all()


async def find_code(repository: CodeRepository, code_id: str) -> TrackedCode | None:
    """Get a code by id, or None."""
    for code in await repository.load_all():
        if code.id == code_id:
            return code
    return None


async def get_code(repository: CodeRepository, code_id: str) -> TrackedCode:
    """Get a code by id. Raises CodeNotFoundError if missing."""
    code = await find_code(repository, code_id)
    if code is None:
        raise CodeNotFoundError(code_id)
    return code


async def replace_code(
    repository: CodeRepository,
    code_id: str,
    replacement: TrackedCodeReplace,
) -> TrackedCode:
    """Replace the whole record of an existing code.

    The tracking URL and creation time are fixed at creation, so the stored
    values are kept whatever the replacement carries.
    """
    if replacement.id != code_id:
        raise CodeValidationError("Record id does not match the code being replaced")
    name = _require(replacement.name, "name")
    target_url = _require(replacement.target_url, "target_url")

    async with repository.transaction() as codes:
        for index, existing in enumerate(codes):
            if existing.id == code_id:
                code = TrackedCode.model_validate(
                    replacement.model_dump()
                    | {
                        "name": name,
                        "target_url": target_url,
                        "tracking_url": existing.tracking_url,
                        "created_at": existing.created_at,
                    }
                )
                codes[index] = code
                break
        else:
            raise CodeNotFoundError(code_id)
    return code


async def delete_code(repository: CodeRepository, code_id: str) -> None:
    """Remove a code and its scan history. Other codes are untouched."""
    async with repository.transaction() as codes:
        remaining = [code for code in codes if code.id != code_id]
        if len(remaining) == len(codes):
            raise CodeNotFoundError(code_id)
        codes[:] = remaining
