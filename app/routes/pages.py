from typing import Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from ..auth import Allow, Deny, get_access, require_user
from ..templating import render

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse)
def index(request: Request, access: Union[Allow, Deny] = Depends(get_access)):
    current_user = access if isinstance(access, Allow) else None
    return render(
        request,
        "index.html",
        {"current_user": current_user, "page_title": "Cek Kesehatan"},
    )


@router.get("/halaman-utama", response_class=HTMLResponse)
def halaman_utama(request: Request, current_user: Allow = Depends(require_user)):
    return render(
        request,
        "halaman_utama.html",
        {
            "current_user": current_user,
            "user_name": current_user.user_name,
            "page_title": "Halaman Utama",
        },
    )
