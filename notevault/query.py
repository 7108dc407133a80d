"""
Note listing predicate.

A ``NoteQuery`` is the full matching condition for ``GET /notes``. The owner
clause is mandatory and always outermost; search text and tag filter are
optional and ANDed together. Search text is matched as a literal,
case-insensitive substring and is never interpreted as a pattern.
"""

from dataclasses import dataclass

from .domain import Note


@dataclass(frozen=True)
class NoteQuery:
    owner_id: str
    search: str = ""
    tag: str = ""

    def __post_init__(self):
        if not self.owner_id:
            raise ValueError("NoteQuery requires an owner id")
        object.__setattr__(self, "search", self.search or "")
        object.__setattr__(self, "tag", self.tag or "")

    def matches_search(self, note: Note) -> bool:
        if not self.search:
            return True
        needle = self.search.casefold()
        if needle in note.title.casefold():
            return True
        return any(needle in tag.casefold() for tag in note.tags)

    def matches_tag(self, note: Note) -> bool:
        if not self.tag:
            return True
        return self.tag in note.tags

    def matches(self, note: Note) -> bool:
        """True when ``note`` belongs to the owner and satisfies every supplied filter."""
        return (
            note.owner_id == self.owner_id
            and self.matches_search(note)
            and self.matches_tag(note)
        )
