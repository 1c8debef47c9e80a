r"""
Distinguished name utilities.

This module provides:
- split_leaf(): Split a DN into its first RDN and the remainder
- parent_container(): Path of the container holding an object
- same_container(): Case-insensitive DN comparison
- normalize_identity(): Canonical key used for deduplication

DNs are treated as opaque tokens. The only parsing done is locating the
first unescaped separator, so escaped commas (``CN=Smith\, J``) stay intact.
"""

from typing import Tuple

DN_SEPARATOR = ","
ESCAPE_CHAR = "\\"


def split_leaf(dn: str) -> Tuple[str, str]:
    """
    Split a distinguished name into its leading RDN and the rest.

    Args:
        dn: A distinguished name

    Returns:
        Tuple of (leaf RDN, parent DN). The parent is an empty string when
        the DN has a single component.

    Examples:
        >>> split_leaf("CN=SRV01,OU=Old,DC=corp,DC=com")
        ('CN=SRV01', 'OU=Old,DC=corp,DC=com')
        >>> split_leaf("CN=Smith\\, J,OU=a")
        ('CN=Smith\\, J', 'OU=a')
    """
    escaped = False
    for index, char in enumerate(dn):
        if escaped:
            escaped = False
            continue
        if char == ESCAPE_CHAR:
            escaped = True
        elif char == DN_SEPARATOR:
            return dn[:index].strip(), dn[index + 1:].strip()
    return dn.strip(), ""


def parent_container(dn: str) -> str:
    """
    Return the path of the container holding the object named by ``dn``.

    Args:
        dn: The object's full distinguished name

    Returns:
        The DN with its first RDN stripped

    Raises:
        ValueError: If the DN is empty or has no parent component

    Examples:
        >>> parent_container("CN=NAME,OU=a,OU=b,DC=x")
        'OU=a,OU=b,DC=x'
    """
    if not dn or not dn.strip():
        raise ValueError("Distinguished name is empty")

    _, parent = split_leaf(dn)
    if not parent:
        raise ValueError(f"Distinguished name has no parent container: {dn}")
    return parent


def _canonical_dn(dn: str) -> str:
    return DN_SEPARATOR.join(part.strip() for part in dn.split(DN_SEPARATOR)).casefold()


def same_container(first: str, second: str) -> bool:
    """
    Check if two container DNs name the same container.

    Attribute names and values in AD are case-insensitive, and whitespace
    around separators is not significant.
    """
    return _canonical_dn(first) == _canonical_dn(second)


def normalize_identity(identity: str) -> str:
    """Return the case-insensitive key for a computer name."""
    return identity.strip().casefold()
