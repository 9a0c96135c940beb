"""
Person Catalog - read-only view of the people a user's evidence refers to.

People are owned by the ingestion/storage layer. The engine only looks them
up by id to label graph nodes and to find the user's own node.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass
class Person:
    """
    An identity node in a user's network.

    The first entry in names is the canonical display name.
    """

    id: str
    user_id: str
    names: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)
    title: Optional[str] = None
    organization: Optional[str] = None
    is_me: bool = False

    @property
    def display_name(self) -> str:
        """Canonical name, falling back to first email, then id."""
        if self.names:
            return self.names[0]
        if self.emails:
            return self.emails[0]
        return self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "names": list(self.names),
            "emails": list(self.emails),
            "title": self.title,
            "organization": self.organization,
            "is_me": self.is_me,
        }

    @classmethod
    def from_row(cls, row: tuple) -> "Person":
        """Create Person from SQLite row."""
        # Row order: id, user_id, names, emails, title, organization, is_me
        return cls(
            id=row[0],
            user_id=row[1],
            names=json.loads(row[2]) if row[2] else [],
            emails=json.loads(row[3]) if row[3] else [],
            title=row[4],
            organization=row[5],
            is_me=bool(row[6]),
        )


class PersonCatalog:
    """Lookup of people by id for one user."""

    def __init__(self, people: Iterable[Person] = ()):
        self._people: dict[str, Person] = {}
        for person in people:
            self._people[person.id] = person

    def __contains__(self, person_id: str) -> bool:
        return person_id in self._people

    def __len__(self) -> int:
        return len(self._people)

    def __iter__(self):
        return iter(sorted(self._people.values(), key=lambda p: p.id))

    def get(self, person_id: str) -> Optional[Person]:
        return self._people.get(person_id)

    def name_for(self, person_id: str) -> str:
        """Display name for a person id (the id itself when unknown)."""
        person = self._people.get(person_id)
        return person.display_name if person else person_id

    def names(self) -> dict[str, str]:
        """Map of person id to display name."""
        return {pid: p.display_name for pid, p in self._people.items()}

    def find_me(self) -> Optional[str]:
        """
        Find the person flagged as the user themselves.

        Returns the smallest flagged id if several are flagged, None if none.
        """
        flagged = sorted(pid for pid, p in self._people.items() if p.is_me)
        if len(flagged) > 1:
            logger.warning(f"Multiple people flagged as me: {flagged}; using {flagged[0]}")
        return flagged[0] if flagged else None
