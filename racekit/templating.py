from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi.templating import Jinja2Templates

BASE_DIR = Path(__file__).resolve().parent

# navigation surface: page name -> route
PAGES = {
    "dashboard": "/dashboard",
    "runners": "/runners",
    "collector": "/collector",
    "admin": "/admin/users",
    "reset-password": "/reset-password",
}

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.globals["pages"] = PAGES


def _fmt_date(value: Optional[datetime], fmt: str = "%d %b %Y") -> str:
    return value.strftime(fmt) if value else ""

templates.env.filters["fmt_date"] = _fmt_date
