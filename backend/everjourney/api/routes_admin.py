"""
Admin overview.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from everjourney.core.security import require_admin
from everjourney.core.templating import render
from everjourney.db.database import get_db
from everjourney.services.dashboards import admin_overview

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard")
def dashboard(request: Request, user: Dict[str, Any] = Depends(require_admin), db: Session = Depends(get_db)):
    return render(request, "admin/dashboard.html", {"title": "Admin", **admin_overview(db)})
