"""
Holiday package listing.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import logging

from everjourney.core.rate_limiting import limiter, SEARCH_LIMIT
from everjourney.core.templating import render
from everjourney.db.database import get_db
from everjourney.services.catalog import package_filter_options
from everjourney.services.listing import query_to_raw
from everjourney.services.package_listing import search_packages

logger = logging.getLogger(__name__)

router = APIRouter(tags=["packages"])


@router.get("/packages/index")
@router.get("/package-list")
@limiter.limit(SEARCH_LIMIT)
def packages(request: Request, db: Session = Depends(get_db)):
    result = search_packages(db, query_to_raw(request.query_params))
    return render(
        request,
        "packages/index.html",
        {"title": "Holiday packages", "result": result, "filters": result.filters, **package_filter_options(db)},
    )
