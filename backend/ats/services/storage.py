import logging
from pathlib import Path
from uuid import uuid4

from ..utils.error_handlers import FileUploadError, get_error_message
from ..utils.validation import sanitize_filename, sanitize_identifier

logger = logging.getLogger(__name__)


def agency_folder(company_name: str, *, agency_id: int | None = None) -> str:
    fallback = f"agency-{agency_id}" if agency_id is not None else None
    return f"{sanitize_identifier(company_name, fallback)}/"


def job_folder(company_name: str, job_title: str, *, agency_id: int | None = None, job_id: int | None = None) -> str:
    company = sanitize_identifier(company_name, f"agency-{agency_id}" if agency_id is not None else None)
    title = sanitize_identifier(job_title, f"job-{job_id}" if job_id is not None else None)
    return f"{company}/{title}/"


class LocalFileStorage:
    """
    Durable blob storage on the local filesystem.

    Files live under `upload_dir`; references are `base_url + relative path`, or
    the bare relative path when no public base URL is configured.
    """

    def __init__(self, upload_dir: str, base_url: str = ""):
        self.root = Path(upload_dir).resolve()
        self.base_url = (base_url or "").rstrip("/")

    def _resolve(self, owner_path: str) -> Path:
        target = (self.root / owner_path).resolve()
        if target != self.root and self.root not in target.parents:
            raise FileUploadError("Invalid storage path")
        return target

    def reference_for(self, rel_path: str) -> str:
        return f"{self.base_url}/{rel_path}" if self.base_url else rel_path

    def create_folder(self, owner_path: str) -> str:
        self._resolve(owner_path).mkdir(parents=True, exist_ok=True)
        return owner_path

    def store(self, owner_path: str, data: bytes, filename: str) -> str:
        """Write `data` under `owner_path` with a collision-free name; return its reference."""
        ext = Path(sanitize_filename(filename)).suffix.lower()
        stored_filename = f"{uuid4().hex}{ext}"
        folder = self._resolve(owner_path)
        dest = folder / stored_filename
        try:
            folder.mkdir(parents=True, exist_ok=True)
            with open(dest, "wb") as out:
                out.write(data)
        except OSError as e:
            logger.error("Failed to store %s under %s: %s", filename, owner_path, e)
            try:
                if dest.exists():
                    dest.unlink()
            except OSError:
                pass
            raise FileUploadError(get_error_message("file_storage_failed"), status_code=500) from e

        rel_path = dest.relative_to(self.root).as_posix()
        logger.info("Stored %s bytes at %s", len(data), rel_path)
        return self.reference_for(rel_path)

    def delete(self, reference: str) -> None:
        """Best-effort removal of a stored file."""
        rel_path = reference[len(self.base_url) + 1:] if self.base_url and reference.startswith(self.base_url) else reference
        try:
            p = self._resolve(rel_path)
            if p.is_file():
                p.unlink()
        except (OSError, FileUploadError) as e:
            logger.warning("Failed to delete stored file %s: %s", reference, e)
