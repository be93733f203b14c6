"""
Provider Document Uploads

Licenses, insurance certificates, logos and other supporting files.
Stored at providers/<user_id>/<doc_type>/<timestamp>_<sanitized name>.
"""
import os
import time
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from homecare.database import get_db
from homecare.models.user import User
from homecare.models.provider import ProviderDocument, ProviderProfile
from homecare.schemas.onboarding import ProviderDocumentResponse
from homecare.api.deps import require_provider
from homecare.core.exceptions import InvalidInputError, NotFoundError
from homecare.config import get_settings
from homecare.services.storage import LocalStorage, get_storage, sanitize_filename
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/provider-documents", tags=["provider-onboarding"])

DOC_TYPES = ("license", "insurance", "other", "logo")
ALLOWED_EXTENSIONS = {"pdf", "jpg", "jpeg", "png", "doc", "docx"}
IMAGE_EXTENSIONS = {"jpg", "jpeg", "png"}


def _extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower().lstrip(".")


@router.post("", response_model=ProviderDocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    doc_type: str = Form(...),
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage)
):
    """
    Upload a document.

    Limits: 10 MB; pdf, jpg, jpeg, png, doc, docx. Logos must be images
    and replace the profile's logo_url.
    """
    settings = get_settings()

    if doc_type not in DOC_TYPES:
        raise InvalidInputError(f"Invalid document type. Must be one of: {', '.join(DOC_TYPES)}")

    extension = _extension(file.filename)
    if extension not in ALLOWED_EXTENSIONS:
        raise InvalidInputError(
            f"Invalid file type. Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )
    if doc_type == "logo" and extension not in IMAGE_EXTENSIONS:
        raise InvalidInputError("Logo must be an image (jpg, jpeg, png)")

    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise InvalidInputError(
            f"File too large. Maximum size is {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
        )
    if not data:
        raise InvalidInputError("File is empty")

    safe_name = sanitize_filename(file.filename)
    key = f"providers/{current_user.id}/{doc_type}/{int(time.time() * 1000)}_{safe_name}"
    storage.save(key, data)

    document = ProviderDocument(
        user_id=current_user.id,
        doc_type=doc_type,
        file_name=safe_name,
        storage_path=key,
        content_type=file.content_type,
        size_bytes=len(data),
    )
    db.add(document)

    if doc_type == "logo":
        profile = db.query(ProviderProfile).filter(ProviderProfile.user_id == current_user.id).first()
        if profile is not None:
            profile.logo_url = key

    db.commit()
    db.refresh(document)

    logger.info(f"Provider document uploaded: {document.id} ({doc_type}) by {current_user.id}")

    return document


@router.get("", response_model=list[ProviderDocumentResponse])
async def list_documents(
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    return db.query(ProviderDocument).filter(
        ProviderDocument.user_id == current_user.id
    ).order_by(ProviderDocument.uploaded_at.desc()).all()


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage)
):
    document = db.query(ProviderDocument).filter(
        ProviderDocument.id == document_id,
        ProviderDocument.user_id == current_user.id
    ).first()
    if not document:
        raise NotFoundError("Document", document_id)

    profile = db.query(ProviderProfile).filter(ProviderProfile.user_id == current_user.id).first()
    if profile is not None and profile.logo_url == document.storage_path:
        profile.logo_url = None

    storage.delete(document.storage_path)
    db.delete(document)
    db.commit()

    logger.info(f"Provider document deleted: {document_id} by {current_user.id}")
    return None
