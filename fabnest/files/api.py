from fastapi import APIRouter, UploadFile, File as Upload, Form, Depends
from sqlalchemy.orm import Session

from fabnest.shared.auth import CurrentUser, get_user
from fabnest.shared.db import get_db
from fabnest.shared.http import ok
from fabnest.files.schemas import UploadedFileOut
from fabnest.files.service import create_file_record
from fabnest.quotes.schemas import CustomFileCreate, CustomFileOut
from fabnest.quotes.service import create_custom_file

router = APIRouter(prefix="/upload", tags=["Files"])

@router.post("")
async def upload_file(
    file: UploadFile = Upload(...),
    file_type: str = Form(..., alias="fileType"),
    destination: str | None = Form(None),
    user: CurrentUser = Depends(get_user),
    db: Session = Depends(get_db),
):
    """Store a 3D model or an image; products/gallery destinations are for admin images."""
    rec = await create_file_record(db, user.sub, file, file_type, destination or None)
    return ok(file=UploadedFileOut.model_validate(rec))

@router.post("/custom-order")
def create_custom_order_file(
    payload: CustomFileCreate, user: CurrentUser = Depends(get_user), db: Session = Depends(get_db)
):
    cf = create_custom_file(db, user, payload.file_id, payload.material, payload.quality, payload.notes)
    out = CustomFileOut.model_validate(cf)
    if not user.is_admin:
        out.file.download_url = None
    return ok(customFile=out)
