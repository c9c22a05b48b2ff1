"""Domain entity for a resolved sign-in identity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """The signed-in principal; only ``subject_id`` is used to stamp authorship."""

    subject_id: str
    is_anonymous: bool = True
    id_token: str = ""
