"""Entry naming for exported archives."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from imagevault.state.models import ImageRecord

SUFFIX_WIDTH = 3


def _suffixed(record: ImageRecord, counter: int) -> str:
    return f"{record.name}_{counter:0{SUFFIX_WIDTH}d}.{record.extension}"


def resolve_entry_names(records: Iterable[ImageRecord]) -> dict[str, str]:
    """Assign a unique archive entry name to every record.

    Records keep ``<name>.<extension>`` when nobody else in the request shares
    it. When two or more share it, all of them are suffixed ``_001``, ``_002``,
    ... ordered by ``(created, sequence)``. A suffixed name that is already
    taken by another entry is skipped.

    Args:
        records: Records being exported; each id should appear once.

    Returns:
        dict[str, str]: Mapping of image id to entry name.
    """
    records = list(records)
    groups: dict[str, list[ImageRecord]] = defaultdict(list)
    for record in records:
        groups[record.filename].append(record)

    names: dict[str, str] = {}
    taken: set[str] = set()
    for filename, members in groups.items():
        if len(members) == 1:
            names[members[0].id] = filename
            taken.add(filename)

    for filename, members in groups.items():
        if len(members) == 1:
            continue
        counter = 1
        for record in sorted(members, key=lambda item: (item.created, item.sequence)):
            candidate = _suffixed(record, counter)
            while candidate in taken:
                counter += 1
                candidate = _suffixed(record, counter)
            names[record.id] = candidate
            taken.add(candidate)
            counter += 1

    return names


__all__ = ["resolve_entry_names", "SUFFIX_WIDTH"]
