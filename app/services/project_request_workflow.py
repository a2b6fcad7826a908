"""
Project request lifecycle.

The transition table below is the single source of truth: the UI hint
endpoint and the server-side enforcement in ``ProjectRequestService``
both read it through ``get_valid_transitions`` / ``can_transition``.

    OPEN                 -> CONTACTED, ASSIGNED, LOST
    CONTACTED            -> ASSIGNED, SITE_VISIT, LOST, OPEN
    ASSIGNED             -> SITE_VISIT, CONTACTED, LOST, CONVERTED_TO_PROJECT
    SITE_VISIT           -> CONVERTED_TO_PROJECT, ASSIGNED, LOST
    CONVERTED_TO_PROJECT -> SITE_VISIT            (follow-up visit)
    LOST                 -> OPEN, CONTACTED, ASSIGNED, SITE_VISIT  (revive)
"""

from typing import Dict, Optional, Tuple

from app.models.project_request import ProjectRequestStatus

S = ProjectRequestStatus

INITIAL_STATUS = S.OPEN

VALID_TRANSITIONS: Dict[ProjectRequestStatus, Tuple[ProjectRequestStatus, ...]] = {
    S.OPEN: (S.CONTACTED, S.ASSIGNED, S.LOST),
    S.CONTACTED: (S.ASSIGNED, S.SITE_VISIT, S.LOST, S.OPEN),
    S.ASSIGNED: (S.SITE_VISIT, S.CONTACTED, S.LOST, S.CONVERTED_TO_PROJECT),
    S.SITE_VISIT: (S.CONVERTED_TO_PROJECT, S.ASSIGNED, S.LOST),
    S.CONVERTED_TO_PROJECT: (S.SITE_VISIT,),
    S.LOST: (S.OPEN, S.CONTACTED, S.ASSIGNED, S.SITE_VISIT),
}

STATUS_LABELS: Dict[ProjectRequestStatus, str] = {
    S.OPEN: "Açık",
    S.CONTACTED: "İletişime Geçildi",
    S.ASSIGNED: "Atama Yapıldı",
    S.SITE_VISIT: "Saha Ziyareti",
    S.CONVERTED_TO_PROJECT: "Projeye Dönüştürüldü",
    S.LOST: "Kaybedildi",
}

CREATED_NOTE = "Proje talebi oluşturuldu"


def get_valid_transitions(current: ProjectRequestStatus | str) -> Tuple[ProjectRequestStatus, ...]:
    """Statuses reachable in one step from ``current``."""
    return VALID_TRANSITIONS[ProjectRequestStatus(current)]


def can_transition(current: ProjectRequestStatus | str, target: ProjectRequestStatus | str) -> bool:
    return ProjectRequestStatus(target) in get_valid_transitions(current)


def status_label(status: ProjectRequestStatus | str) -> str:
    return STATUS_LABELS[ProjectRequestStatus(status)]


def default_transition_note(target: ProjectRequestStatus | str, note: Optional[str] = None) -> str:
    """Caller's note if given, otherwise "Durum <label> olarak güncellendi"."""
    if note and note.strip():
        return note.strip()
    return f"Durum {status_label(target)} olarak güncellendi"
