from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from ...database import get_db
from ...models.user import User
from ...schemas.watch_history import WatchHistoryResponse
from ...services.progress_store import progress_store
from ...api.deps import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/history", response_model=List[WatchHistoryResponse])
def get_watch_history(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Get every movie the user has progress for, one row per movie
    """
    try:
        return progress_store.get_history(db, current_user)

    except Exception as e:
        logger.error(f"Error fetching watch history: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch watch history"
        )
