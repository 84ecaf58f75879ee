from pathlib import Path
from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from fabnest.shared.auth import CurrentUser, require_admin
from fabnest.shared.db import get_db
from fabnest.shared.errors import NotFound
from fabnest.shared.http import ok
from fabnest.shared.schemas import clamp_page
from fabnest.auth.schemas import UserOut, UserUpdate, UserList
from fabnest.files.schemas import FileOut
from fabnest.files.service import get_file
from fabnest.admin import service

router = APIRouter(prefix="/admin", tags=["Admin"])

@router.get("/users")
def list_users(
    limit: int | None = Query(None),
    offset: int | None = Query(None),
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    limit, offset = clamp_page(limit, offset)
    rows, total = service.list_users(db, limit, offset)
    return UserList(items=[UserOut.model_validate(u) for u in rows], total=total, limit=limit, offset=offset)

@router.put("/users/{user_id}")
def update_user(
    user_id: str, payload: UserUpdate, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)
):
    return ok(user=UserOut.model_validate(service.update_user(db, admin, user_id, payload)))

@router.delete("/users/{user_id}")
def delete_user(user_id: str, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)):
    service.delete_user(db, admin, user_id)
    return ok(message="User deleted successfully")

@router.get("/files/{file_id}")
def file_meta(file_id: str, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)):
    return ok(file=FileOut.model_validate(get_file(db, file_id)))

@router.get("/files/{file_id}/download")
def download_file(file_id: str, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)):
    f = get_file(db, file_id)
    if not Path(f.path).is_file():
        raise NotFound("File not found on server")
    # filename= makes Starlette send Content-Disposition: attachment
    return FileResponse(path=f.path, media_type=f.mime_type or "application/octet-stream", filename=f.filename)
