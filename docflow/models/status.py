from enum import IntEnum
from typing import Optional


class DocumentStatus(IntEnum):
    """Status codes of a document version, as stored by the document subsystem."""
    draft_review = 0
    draft_approval = 1
    released = 2
    in_workflow = 3
    rejected = -1
    obsolete = -2
    expired = -3
    in_revision = 4
    draft = 5
    needs_correction = 6

    @property
    def changes_document(self) -> bool:
        # only these two override the version's own status when a state is reached
        return self in (DocumentStatus.released, DocumentStatus.rejected)


def coerce_status(value: Optional[int]) -> Optional[DocumentStatus]:
    if value is None:
        return None
    try:
        return DocumentStatus(int(value))
    except ValueError:
        return None
