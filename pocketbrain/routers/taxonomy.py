"""
Taxonomy router.

GET /taxonomy/domains — every domain with its activities
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pocketbrain.db.base import get_db
from pocketbrain.schemas.taxonomy import DomainListResponse, DomainOut
from pocketbrain.services.taxonomy import list_domains

router = APIRouter(prefix="/taxonomy", tags=["taxonomy"])


@router.get("/domains", response_model=DomainListResponse, summary="List domains and activities")
def domains(db: Session = Depends(get_db)):
    items = list_domains(db)
    return DomainListResponse(
        total=len(items),
        items=[DomainOut.model_validate(d) for d in items],
    )
