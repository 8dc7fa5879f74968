import logging
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request, Security
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from book import Book, BookStatus, Lend
from config import settings
from errors import (
    AlreadyIssued,
    BookNotFound,
    DuplicateId,
    DuplicateLend,
    NotIssued,
    StoreError,
)
from library import Library

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_library() -> Library:
    return Library(settings.database_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # An unusable store aborts startup
    get_library()
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

# --- Security ---
api_key_header = APIKeyHeader(name="X-API-Key")


def get_api_key(api_key: str = Security(api_key_header)):
    """Dependency that validates the API key."""
    if api_key == settings.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Could not validate credentials")


# --- Models ---
class BookModel(BaseModel):
    id: str
    title: str
    author: str
    status: BookStatus = BookStatus.AVAILABLE

    @classmethod
    def from_book(cls, book: Book) -> "BookModel":
        return cls(id=book.id, title=book.title, author=book.author, status=book.status)


class BookCreateModel(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)


class IssueRequest(BaseModel):
    student: str = Field(..., min_length=1)


class LendModel(BaseModel):
    student: str
    book_id: str

    @classmethod
    def from_lend(cls, lend: Lend) -> "LendModel":
        return cls(student=lend.student, book_id=lend.book_id)


class StatsModel(BaseModel):
    total_books: int
    available_books: int
    issued_books: int
    active_lends: int


# --- Error mapping ---
@app.exception_handler(BookNotFound)
async def book_not_found_handler(request: Request, exc: BookNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DuplicateId)
async def duplicate_id_handler(request: Request, exc: DuplicateId):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(AlreadyIssued)
@app.exception_handler(NotIssued)
@app.exception_handler(DuplicateLend)
async def circulation_conflict_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Database error"})


# --- Health ---
@app.get("/health")
def health(library: Library = Depends(get_library)):
    """Lightweight health endpoint that touches the database."""
    db_ok = True
    try:
        stats = library.get_statistics()
    except StoreError:
        db_ok = False
        stats = {}
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "db": db_ok,
        "total_books": stats.get("total_books", 0),
    }


# --- Books ---
@app.get("/books", response_model=List[BookModel])
def get_books(library: Library = Depends(get_library)):
    return [BookModel.from_book(b) for b in library.list_books()]


@app.get("/books/{book_id}", response_model=BookModel)
def get_book(book_id: str, library: Library = Depends(get_library)):
    book = library.find_book(book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found.")
    return BookModel.from_book(book)


@app.post("/books", response_model=BookModel, dependencies=[Depends(get_api_key)])
def add_book(payload: BookCreateModel, library: Library = Depends(get_library)):
    try:
        book = library.add_book(Book(id=payload.id, title=payload.title, author=payload.author))
    except DuplicateId:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BookModel.from_book(book)


@app.delete("/books/{book_id}", dependencies=[Depends(get_api_key)])
def delete_book(book_id: str, library: Library = Depends(get_library)):
    if not library.delete_book(book_id):
        raise HTTPException(status_code=404, detail="Book not found.")
    return {"message": f"Book with id {book_id} has been removed."}


# --- Circulation ---
@app.post("/books/{book_id}/issue", response_model=LendModel, dependencies=[Depends(get_api_key)])
def issue_book(book_id: str, payload: IssueRequest, library: Library = Depends(get_library)):
    try:
        lend = library.issue(book_id, payload.student)
    except DuplicateLend:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return LendModel.from_lend(lend)


@app.post("/books/{book_id}/return", response_model=LendModel, dependencies=[Depends(get_api_key)])
def return_book(book_id: str, library: Library = Depends(get_library)):
    return LendModel.from_lend(library.return_book(book_id))


@app.get("/lends", response_model=List[LendModel])
def get_lends(library: Library = Depends(get_library)):
    return [LendModel.from_lend(l) for l in library.list_lends()]


@app.get("/stats", response_model=StatsModel)
def get_stats(library: Library = Depends(get_library)):
    return library.get_statistics()
