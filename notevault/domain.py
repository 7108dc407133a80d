from datetime import datetime
from typing import Any, Dict, List, Optional


class Identity:
    """A registered user. The password hash never leaves the credential store."""

    def __init__(self, id: str, name: str, email: str, created_at: datetime):
        self.id = id
        self.name = name
        self.email = email
        self.created_at = created_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
        }


class Note:
    """Represents a single note owned by one identity."""

    def __init__(self, id: str, owner_id: str, title: str, content: str,
                 tags: Optional[List[str]], created_at: datetime, updated_at: datetime):
        self.id = id
        self.owner_id = owner_id
        self.title = title
        self.content = content
        self.tags = list(tags or [])
        self.created_at = created_at
        self.updated_at = updated_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert note to dictionary representation. The owner id is implied by the caller."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "tags": list(self.tags),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
