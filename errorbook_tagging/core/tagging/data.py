"""
Data models used by errorbook-tagging
"""
from __future__ import annotations

from typing import TypedDict

from attrs import define, field, frozen


class TagData(TypedDict):
    """
    Data about a single tag, as returned by api.get_tags().

    This is a plain dictionary; the class only describes its keys.
    """
    id: int
    name: str
    parent_id: int | None
    depth: int
    order: int
    is_system: bool
    child_count: int


@frozen
class AssociationRecord:
    """
    One error item <-> system tag link, keyed by the tag's (name, subject).

    The tag's ID is left out on purpose: system tag IDs do not survive a rebuild.
    """

    error_item_id: int
    tag_name: str
    subject: str


@frozen
class CustomTagPlacement:
    """
    A custom tag whose parent is a system tag, again keyed by the parent's (name, subject).
    """

    tag_id: int
    parent_name: str
    subject: str


@define
class AssociationSnapshot:
    """
    Everything a rebuild needs to remember about the system tags it is about to delete.
    """

    records: list[AssociationRecord] = field(factory=list)
    placements: list[CustomTagPlacement] = field(factory=list)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def item_count(self) -> int:
        """
        How many distinct error items have at least one system tag.
        """
        return len({record.error_item_id for record in self.records})

    def by_item(self) -> dict[int, list[AssociationRecord]]:
        """
        Group the records by error item, keeping the order they were taken in.
        """
        grouped: dict[int, list[AssociationRecord]] = {}
        for record in self.records:
            grouped.setdefault(record.error_item_id, []).append(record)
        return grouped


@define
class RestoreResult:
    """
    Counts reported by the association restorer.
    """

    restored: int = 0
    custom_tags_created: int = 0
    custom_tags_reparented: int = 0


@frozen
class RebuildResult:
    """
    Outcome of a successful rebuild.
    """

    tags_created: int
    associations_restored: int
    custom_tags_created: int
    custom_tags_reparented: int = 0

    def as_dict(self) -> dict[str, int]:
        """
        The counts, under the keys reported to API clients.
        """
        return {
            "tagsCreated": self.tags_created,
            "associationsRestored": self.associations_restored,
            "customTagsCreated": self.custom_tags_created,
            "customTagsReparented": self.custom_tags_reparented,
        }
