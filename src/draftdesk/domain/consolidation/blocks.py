"""Default field-to-block classification table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from draftdesk.domain.model import BlockKey

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

EVENT_FIELDS = (
    "name",
    "city",
    "country",
    "countrySubdivisionNameLevel1",
    "countrySubdivisionNameLevel2",
    "countrySubdivisionDisplayCodeLevel1",
    "countrySubdivisionDisplayCodeLevel2",
    "websiteUrl",
    "facebookUrl",
    "instagramUrl",
    "latitude",
    "longitude",
    "fullAddress",
    "dataSource",
)
EDITION_FIELDS = (
    "year",
    "startDate",
    "endDate",
    "calendarStatus",
    "timeZone",
    "registrationOpeningDate",
    "registrationClosingDate",
    "registrantsNumber",
)
ORGANIZER_FIELDS = ("organizer",)
RACE_FIELDS = ("racesToAdd", "racesToUpdate", "existingRaces")


def _default_table() -> dict[str, str]:
    table: dict[str, str] = {}
    for block, names in (
        (BlockKey.EVENT, EVENT_FIELDS),
        (BlockKey.EDITION, EDITION_FIELDS),
        (BlockKey.ORGANIZER, ORGANIZER_FIELDS),
        (BlockKey.RACES, RACE_FIELDS),
    ):
        table.update(dict.fromkeys(names, block))
    return table


@dataclass(frozen=True, slots=True)
class TableBlockClassifier:
    """Classify fields by exact lookup; unknown fields belong to no block."""

    table: Mapping[str, str] = field(default_factory=_default_table)

    def __call__(self, field: str) -> str | None:
        return self.table.get(field)

    def fields_of(self, block_key: str) -> tuple[str, ...]:
        return tuple(name for name, block in self.table.items() if block == block_key)

    def extended(self, extra: Iterable[tuple[str, str]]) -> TableBlockClassifier:
        return TableBlockClassifier({**self.table, **dict(extra)})


DEFAULT_BLOCK_CLASSIFIER = TableBlockClassifier()
