"""Element identity.

Every level, floor, opening and shape carries an IFC GlobalId (22-char
compressed GUID). The exporter reuses it, so an element keeps the same id in
the JSON document and in the IFC file.
"""

from __future__ import annotations

import string
import uuid

import ifcopenshell.guid

_IFC_ID_CHARS = frozenset(string.digits + string.ascii_letters + "_$")


def generate_ifc_id() -> str:
    """Generate a new IFC-compatible GlobalId (22 characters)."""
    return ifcopenshell.guid.compress(uuid.uuid4().hex)


def is_valid_ifc_id(value: str) -> bool:
    """Check that a string looks like a compressed IFC GlobalId."""
    return (
        isinstance(value, str)
        and len(value) == 22
        and set(value) <= _IFC_ID_CHARS
    )
