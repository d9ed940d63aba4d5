"""
Home page, support page, unified search redirect and the deals page.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
import logging

from everjourney.core.rate_limiting import limiter, SEARCH_LIMIT
from everjourney.core.templating import render
from everjourney.db.database import get_db
from everjourney.services.catalog import deal_filter_options, home_page
from everjourney.services.deal_listing import search_deals, transport_deals
from everjourney.services.listing import query_to_raw
from everjourney.services.search import search_redirect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["home"])


@router.get("/")
def home(request: Request, db: Session = Depends(get_db)):
    return render(request, "home.html", {"title": "EverJourney", **home_page(db)})


@router.get("/home")
def home_alias():
    return RedirectResponse("/", status_code=302)


@router.get("/support")
def support(request: Request):
    return render(request, "support.html", {"title": "Support"})


@router.get("/search")
def search(request: Request):
    """Forward the search box to the stays or transport listing."""
    return RedirectResponse(search_redirect(request.query_params.multi_items()), status_code=302)


@router.get("/deals")
@limiter.limit(SEARCH_LIMIT)
def deals(request: Request, db: Session = Depends(get_db)):
    result = search_deals(db, query_to_raw(request.query_params))
    return render(
        request,
        "deals/index.html",
        {
            "title": "Deals",
            "result": result,
            "filters": result.filters,
            "transport_deals": transport_deals(db),
            **deal_filter_options(db),
        },
    )
