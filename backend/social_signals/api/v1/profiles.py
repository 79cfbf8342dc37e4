"""
API endpoints for stored profiles.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_signals.api.dependencies import get_current_user_id
from social_signals.core.errors import ValidationError
from social_signals.db.session import get_db
from social_signals.schemas.profile import MergeDuplicatesRequest, MergeDuplicatesResponse, MergeGroupResult
from social_signals.services.merge import merge_duplicate_profiles

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/profiles",
    tags=["profiles"],
)


@router.post("/merge-duplicates", response_model=MergeDuplicatesResponse)
async def merge_duplicates(
    request_data: MergeDuplicatesRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Merge duplicate profiles whose name or identifiers contain the pattern.

    Each duplicate group is merged in its own savepoint; a failed group is
    reported with its error and leaves the others untouched.

    Raises:
        HTTPException 400: If the pattern is blank
        HTTPException 500: On unexpected errors
    """
    try:
        outcomes = await merge_duplicate_profiles(db, request_data.pattern)
        await db.commit()
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.exception(f"[MERGE] Merge for pattern '{request_data.pattern}' failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to merge profiles: {str(e)}",
        )

    logger.info(f"[MERGE] User {user_id} merged {len(outcomes)} groups for '{request_data.pattern}'")
    return MergeDuplicatesResponse(
        groups=[MergeGroupResult(**o.to_dict()) for o in outcomes],
        mergedProfiles=sum(o.merged_count for o in outcomes),
    )
