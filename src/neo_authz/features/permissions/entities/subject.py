"""Subjects: the actors that hold grants."""

from dataclasses import dataclass
from enum import Flag, auto
from typing import Protocol, runtime_checkable, Union

from ....config.constants import CAPABILITY_OWNER_TYPE, ROLE_OWNER_TYPE
from ....core.exceptions import ValidationError
from .grant import EntityRef

RESERVED_SUBJECT_TYPES = frozenset({ROLE_OWNER_TYPE, CAPABILITY_OWNER_TYPE})


class SubjectTraits(Flag):
    """Grant-holding abilities a subject type declares."""

    NONE = 0
    PERMISSIONS = auto()
    ROLES = auto()
    CAPABILITIES = auto()
    ALL = PERMISSIONS | ROLES | CAPABILITIES


@runtime_checkable
class Subject(Protocol):
    """Anything that can hold permissions, roles or capabilities."""

    subject_type: str
    subject_id: Union[str, int]
    guard: str
    traits: SubjectTraits


@dataclass(frozen=True)
class SubjectRef:
    """Plain subject value, e.g. a user resolved from a request."""

    subject_type: str
    subject_id: Union[str, int]
    guard: str = "web"
    traits: SubjectTraits = SubjectTraits.ALL


def subject_owner(subject: Subject) -> EntityRef:
    """Grant owner reference for a subject.

    Role and capability owner types are reserved for definition-owned edges.
    """
    if subject.subject_type in RESERVED_SUBJECT_TYPES:
        raise ValidationError(f"Subject type '{subject.subject_type}' is reserved for grant owners")
    return EntityRef(subject.subject_type, str(subject.subject_id))
