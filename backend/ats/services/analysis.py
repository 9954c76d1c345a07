import logging
import time

import httpx

from ..config import Settings
from ..utils.error_handlers import AnalysisDispatchError

logger = logging.getLogger(__name__)


def _safe_truncate(s: str, n: int = 500) -> str:
    s = s or ""
    if len(s) <= n:
        return s
    return s[:n] + "…"


class AnalysisClient:
    """
    Submits stored resumes to the external scoring service.

    Endpoint:
      POST {base_url}/submissions
    Auth:
      Authorization: Bearer {api_key}   (only when configured)
    """

    def __init__(self, *, base_url: str, api_key: str = "", timeout_s: float = 10.0, client: httpx.Client | None = None):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout_s, headers=headers)

    def submit(self, application_id: int, file_reference: str, job_reference: int) -> None:
        body = {
            "application_id": int(application_id),
            "file_reference": file_reference,
            "job_reference": str(job_reference),
        }
        t0 = time.time()
        try:
            r = self._client.post("/submissions", json=body)
        except httpx.TimeoutException as e:
            raise AnalysisDispatchError("Analysis service timed out") from e
        except httpx.HTTPError as e:
            raise AnalysisDispatchError(f"Analysis service unreachable: {type(e).__name__}") from e

        latency_ms = int((time.time() - t0) * 1000)
        if r.status_code >= 400:
            raise AnalysisDispatchError(
                f"Analysis service returned {r.status_code}",
                details={"status_code": r.status_code, "body": _safe_truncate(r.text)},
            )
        logger.info("Analysis submitted application_id=%s status=%s latency_ms=%s", application_id, r.status_code, latency_ms)

    def close(self) -> None:
        self._client.close()


class DisabledAnalysisClient:
    """Used when ANALYSIS_SERVICE_URL is not set."""

    def submit(self, application_id: int, file_reference: str, job_reference: int) -> None:
        logger.info("Analysis service not configured; skipping application_id=%s", application_id)

    def close(self) -> None:
        pass


def build_analysis_client(settings: Settings):
    if not settings.analysis_enabled:
        return DisabledAnalysisClient()
    return AnalysisClient(
        base_url=settings.analysis_service_url,
        api_key=settings.analysis_api_key,
        timeout_s=settings.analysis_timeout_s,
    )
