"""
Transport route listing.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import logging

from everjourney.core.rate_limiting import limiter, SEARCH_LIMIT
from everjourney.core.templating import render
from everjourney.db.database import get_db
from everjourney.services.catalog import transport_filter_options
from everjourney.services.listing import query_to_raw
from everjourney.services.transport_listing import search_transport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transport"])


@router.get("/transport")
@limiter.limit(SEARCH_LIMIT)
def transport(request: Request, db: Session = Depends(get_db)):
    result = search_transport(db, query_to_raw(request.query_params))
    return render(
        request,
        "transport/index.html",
        {"title": "Transport", "result": result, "filters": result.filters, **transport_filter_options(db)},
    )
