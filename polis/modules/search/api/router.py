from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from polis.deps import get_db
from polis.modules.search.schemas.search import Suggestion, UserMatch
from polis.modules.search.services.search import search_users, search_users_and_tags

router = APIRouter()


def _clean_term(searchTerm: str = Query(...)) -> str:
    term = searchTerm.strip()
    if not term:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="searchTerm must not be blank",
        )
    return term


@router.get("/user-search", response_model=List[UserMatch])
def user_search(
    term: str = Depends(_clean_term),
    db: Session = Depends(get_db),
) -> Any:
    return search_users(db, term)


@router.get("/user-tag-search", response_model=List[Suggestion])
def user_tag_search(
    term: str = Depends(_clean_term),
    db: Session = Depends(get_db),
) -> Any:
    """
    Suggestions for the search bar: matching users first, then matching tags.
    """
    return search_users_and_tags(db, term)
