"""
Registration and identity gate.

Identity is a name/email match and is not a security boundary. It only
gates the album: packs and trades require a registered state.
"""

from corplegends.models.collection_state import CollectionState
from corplegends.models.failure import (
    AlreadyRegisteredError,
    FailureKind,
    IdentityMismatchError,
    KnownError,
    NotRegisteredError,
)


def _normalize(value: str) -> str:
    return " ".join(value.split()).casefold()


def register(
    state: CollectionState,
    display_name: str,
    contact_handle: str,
    starter_packs: int,
) -> CollectionState:
    """
    Register an album and grant the starter packs.

    Raises:
        AlreadyRegisteredError: If the album is already registered
        KnownError: If name or handle is blank
    """
    if state.is_registered:
        raise AlreadyRegisteredError()

    name = display_name.strip()
    handle = contact_handle.strip()
    if not name or not handle:
        raise KnownError(
            kind=FailureKind.INVALID_INPUT,
            message="Name and email are required.",
        )

    return state.evolve(
        display_name=name,
        contact_handle=handle,
        is_registered=True,
        packs_available=state.packs_available + starter_packs,
    )


def require_registered(state: CollectionState) -> None:
    """
    Raises:
        NotRegisteredError: If the album is not registered
    """
    if not state.is_registered:
        raise NotRegisteredError()


def verify_identity(state: CollectionState, display_name: str, contact_handle: str) -> None:
    """
    Check a login against the registered identity.

    Comparison ignores case and surrounding or repeated whitespace.

    Raises:
        NotRegisteredError: If the album is not registered
        IdentityMismatchError: If name or handle differ
    """
    require_registered(state)
    if _normalize(display_name) != _normalize(state.display_name) or _normalize(
        contact_handle
    ) != _normalize(state.contact_handle):
        raise IdentityMismatchError()
