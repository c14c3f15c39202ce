"""Attachment reconciliation.

Pure logic, no I/O: given a case's current attachments, the storage keys the
caller asked to remove and the newly uploaded attachments, compute the next
attachment list and the blobs that must be deleted once it is committed.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Set

from patient_case_service.core.exceptions import ValidationException
from patient_case_service.models import Attachment


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a reconciliation step."""

    attachments: List[Attachment]
    to_delete: Set[str] = field(default_factory=set)


def reconcile(
    current: Sequence[Attachment],
    remove_keys: Iterable[str],
    added: Sequence[Attachment],
) -> ReconcileResult:
    """Compute the next attachment list for a case.

    Args:
        current: Attachments currently on the case, in upload order
        remove_keys: Storage keys to remove. Keys not on the case are ignored.
        added: Newly stored attachments, in upload order

    Returns:
        ReconcileResult with surviving attachments followed by ``added``, and
        the storage keys that were actually removed

    Raises:
        ValidationException: If ``added`` repeats a storage key or reuses one
            already on the case
    """
    remove = set(remove_keys)

    survivors = [a for a in current if a.storage_key not in remove]
    to_delete = {a.storage_key for a in current if a.storage_key in remove}

    # Removed keys count too: their blobs are deleted after the commit
    seen = {a.storage_key for a in current}
    for attachment in added:
        if attachment.storage_key in seen:
            raise ValidationException(
                f"Duplicate storage key in attachments: {attachment.storage_key}"
            )
        seen.add(attachment.storage_key)

    return ReconcileResult(attachments=survivors + list(added), to_delete=to_delete)
