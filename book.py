from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict


class BookStatus(str, Enum):
    AVAILABLE = "available"
    ISSUED = "issued"


@dataclass
class Book:
    """A single catalog entry in the library."""

    id: str
    title: str
    author: str
    status: BookStatus = BookStatus.AVAILABLE

    def __post_init__(self) -> None:
        self.id = self.id.strip()
        self.title = self.title.strip()
        self.author = self.author.strip()
        self.status = BookStatus(self.status)

    @property
    def is_issued(self) -> bool:
        return self.status == BookStatus.ISSUED

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.id} - {self.title} by {self.author} [{self.status.value}]"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        return cls(
            id=data["id"],
            title=data["title"],
            author=data["author"],
            status=data.get("status", BookStatus.AVAILABLE.value),
        )


@dataclass
class Lend:
    """A student currently holding a book."""

    student: str
    book_id: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lend":
        return cls(student=data["student"], book_id=data["book_id"])
