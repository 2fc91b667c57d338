"""
Deterministic pseudonymization of user records.

A user's replacement identity is derived from a SHA-256 digest of their
stable id and original names. The first 32 bits of the digest seed a
random generator that picks a first and a last name from fixed lists;
the same seed also yields a three digit suffix. Running the migration
again over the same source row therefore always produces the same
replacement name, suffix and email.

Distinct users can map to the same replacement: there are 100 first
names, 100 last names and 1000 suffixes. Nothing here relies on the
replacement being unique.

Example:
    >>> pseudo = pseudonymize("u1", "Jane", "Doe")
    >>> pseudo == pseudonymize("u1", "Jane", "Doe")
    True
    >>> pseudo.email("example.com").endswith("@example.com")
    True
"""

from __future__ import annotations

import hashlib
import random
from typing import NamedTuple

from pydantic import ValidationError

from identitymigrator.entities import ApplicationUser, EntityType, Row
from identitymigrator.exceptions import TransformError

FIRST_NAMES: tuple[str, ...] = (
    "Alex", "Taylor", "Jordan", "Casey", "Riley", "Quinn", "Morgan", "Avery", "Reese", "Jamie",
    "Rowan", "Parker", "Drew", "Shawn", "Emerson", "Hayden", "Skyler", "Finley", "Sage", "Kendall",
    "Cameron", "Logan", "Blake", "Harper", "Elliot", "Dana", "Micah", "Charlie", "Dakota", "Peyton",
    "Jude", "Remy", "Rory", "Eden", "Adrian", "Alexis", "Bailey", "Brett", "Campbell", "Chandler",
    "Corey", "Darian", "Devon", "Emery", "Frankie", "Hollis", "Jesse", "Jules", "Kai", "Kasey",
    "Kris", "Lane", "Lennon", "Linden", "Luca", "Marley", "Monroe", "Noel", "Oakley", "Phoenix",
    "Reagan", "River", "Rylan", "Sasha", "Shiloh", "Sidney", "Spencer", "Stevie", "Teagan", "Toby",
    "Tristan", "Val", "Wren", "Arden", "Bellamy", "Blaine", "Brighton", "Cody", "Dallas", "Ellis",
    "Gray", "Indy", "Jaden", "Keegan", "Kendrick", "Laken", "Leighton", "Lex", "Merritt", "Murphy",
    "Nico", "Parker", "Quincy", "Reign", "Sutton", "Tanner", "Tyler", "Vaughn", "Willow", "Zephyr",
)  # fmt: skip

LAST_NAMES: tuple[str, ...] = (
    "Hill", "Brooks", "Reed", "Parker", "Gray", "Mason", "Price", "Wells", "Cooper", "Hayes",
    "Bennett", "Collins", "Foster", "Greer", "Jensen", "Kennedy", "Monroe", "Palmer", "Sawyer", "Wade",
    "Adams", "Baker", "Barnes", "Bell", "Bishop", "Boone", "Bowen", "Brady", "Bryant", "Carson",
    "Chambers", "Clarke", "Clayton", "Cole", "Collins", "Cruz", "Dalton", "Dawson", "Dean", "Dixon",
    "Douglas", "Doyle", "Drake", "Dunn", "Eaton", "Ellis", "Farrell", "Fischer", "Fleming", "Ford",
    "Fowler", "Franklin", "Garner", "Gibbs", "Glover", "Grady", "Grant", "Griffin", "Hale", "Hardy",
    "Harmon", "Harper", "Harris", "Hart", "Hendrix", "Holt", "Hopkins", "Hudson", "Hughes", "Hunter",
    "Ingram", "Jarvis", "Keller", "Lane", "Lawson", "Logan", "Lowe", "Manning", "Marshall", "Massey",
    "Matthews", "Maxwell", "McCoy", "Meyer", "Mills", "Moody", "Nash", "Newman", "Norton", "Page",
    "Payne", "Pierce", "Poole", "Porter", "Pratt", "Quinn", "Ramsey", "Reeves", "Rhodes", "Roy",
)  # fmt: skip


class Pseudonym(NamedTuple):
    """Replacement identity for one user."""

    first_name: str
    last_name: str
    suffix: str

    def email(self, domain: str) -> str:
        """
        Build the lowercase email address for this pseudonym.

        The same string is used as the user name.

        Args:
            domain: Email domain, without the leading "@".

        Returns:
            "<first>.<last>.<suffix>@<domain>" in lowercase.
        """
        return f"{self.first_name}.{self.last_name}.{self.suffix}@{domain}".lower()


def derive_seed(user_id: str, first_name: str | None, last_name: str | None) -> int:
    """
    Derive the signed 32-bit seed for a user.

    Missing names contribute an empty string, so ``None`` and ``""``
    produce the same seed.

    Args:
        user_id: The user's primary key.
        first_name: Original first name.
        last_name: Original last name.

    Returns:
        The first four bytes of SHA-256("id|first|last") as a
        little-endian signed integer.
    """
    material = f"{user_id}|{first_name or ''}|{last_name or ''}"
    digest = hashlib.sha256(material.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], byteorder="little", signed=True)


def pseudonymize(user_id: str, first_name: str | None, last_name: str | None) -> Pseudonym:
    """
    Map a user's identity to a deterministic replacement identity.

    Args:
        user_id: The user's primary key.
        first_name: Original first name.
        last_name: Original last name.

    Returns:
        The replacement first name, last name and zero-padded suffix.
    """
    seed = derive_seed(user_id, first_name, last_name)
    rng = random.Random(seed)
    # draw order is part of the output contract: first name, then last name
    first = FIRST_NAMES[rng.randrange(len(FIRST_NAMES))]
    last = LAST_NAMES[rng.randrange(len(LAST_NAMES))]
    suffix = f"{abs(seed) % 1000:03d}"
    return Pseudonym(first, last, suffix)


def deidentify_user(row: Row, email_domain: str) -> Row:
    """
    Build the destination record for a source user row.

    The primary key, class and company are kept. Names, user name and
    email are replaced with the user's pseudonym, blobs are dropped and
    every credential or session column is reset so the account cannot
    be used to sign in.

    Args:
        row: Source ``AspNetUsers`` row keyed by column name.
        email_domain: Domain of the generated email address.

    Returns:
        The destination row keyed by column name.

    Raises:
        TransformError: If the row has no usable id or fails validation.
    """
    try:
        source = ApplicationUser.model_validate(row)
    except ValidationError as e:
        raise TransformError(EntityType.USER, row.get("Id"), str(e)) from e

    pseudo = pseudonymize(source.id, source.first_name, source.last_name)
    email = pseudo.email(email_domain)

    copy = ApplicationUser(
        id=source.id,
        first_name=pseudo.first_name,
        last_name=pseudo.last_name,
        class_=source.class_,
        company=source.company,
        profile_picture=None,
        resume=None,
        user_name=email,
        normalized_user_name=email.upper(),
        email=email,
        normalized_email=email.upper(),
        email_confirmed=False,
        password_hash=None,
        security_stamp=None,
        concurrency_stamp=None,
        phone_number=None,
        phone_number_confirmed=False,
        two_factor_enabled=False,
        lockout_end=None,
        lockout_enabled=False,
        access_failed_count=0,
    )
    return copy.to_row()


__all__ = [
    "FIRST_NAMES",
    "LAST_NAMES",
    "Pseudonym",
    "derive_seed",
    "pseudonymize",
    "deidentify_user",
]
