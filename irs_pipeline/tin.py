"""Taxpayer identification number shape rules (EIN, SSN, ITIN)."""

from __future__ import annotations

EIN_TYPE = "1"
INDIVIDUAL_TYPE = "2"

VALID_EIN_PREFIXES = frozenset(
    f"{prefix:02d}"
    for prefix in [
        *range(1, 7),
        *range(10, 17),
        *range(20, 28),
        *range(30, 49),
        *range(50, 69),
        *range(71, 78),
        *range(80, 89),
        *range(90, 96),
        98,
        99,
    ]
)

# ITIN groups, plus 93 for adoption TINs.
_ITIN_GROUPS = frozenset([*range(50, 66), *range(70, 89), *range(90, 100)])


def is_well_formed(tin: str) -> bool:
    return len(tin) == 9 and tin.isascii() and tin.isdigit() and len(set(tin)) > 1


def is_valid_ssn(tin: str) -> bool:
    if not is_well_formed(tin):
        return False
    area, group, serial = int(tin[:3]), int(tin[3:5]), int(tin[5:])
    return area not in (0, 666) and area < 900 and group != 0 and serial != 0


def is_valid_itin(tin: str) -> bool:
    if not is_well_formed(tin) or tin[0] != "9":
        return False
    return int(tin[3:5]) in _ITIN_GROUPS


def is_valid_ein(tin: str) -> bool:
    return is_well_formed(tin) and tin[:2] in VALID_EIN_PREFIXES


def tin_problem(tin: str, tin_type: str = "") -> str | None:
    """Rule identifier of the first problem found with ``tin``, or None.

    ``tin_type`` follows the payee record: "1" for an EIN, "2" for an SSN, ITIN
    or ATIN, blank when unknown (shape is checked, nothing more).
    """
    if not is_well_formed(tin):
        return "tin-format"
    if tin_type == EIN_TYPE and not is_valid_ein(tin):
        return "ein-prefix"
    if tin_type == INDIVIDUAL_TYPE and not (is_valid_ssn(tin) or is_valid_itin(tin)):
        return "ssn-format"
    return None
