from typing import Optional

from config import settings


class BookValidator:
    """Checks the fields of a book before it reaches the database."""

    @staticmethod
    def normalize_id(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return raw.strip()

    @staticmethod
    def is_valid_id(book_id: Optional[str], max_length: Optional[int] = None) -> bool:
        s = BookValidator.normalize_id(book_id)
        if not s:
            return False
        limit = max_length if max_length is not None else settings.book_id_max_length
        if len(s) > limit:
            return False
        # ids are used verbatim as keys; inner whitespace is almost always a typo
        return not any(ch.isspace() for ch in s)

    @staticmethod
    def validate_text(text: Optional[str]) -> bool:
        return text is not None and bool(text.strip())

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return BookValidator.validate_text(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        return BookValidator.validate_text(author)


class StudentValidator:
    @staticmethod
    def normalize(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return raw.strip()

    @staticmethod
    def is_valid(student: Optional[str]) -> bool:
        return bool(StudentValidator.normalize(student))
