import os
import sys
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Ensure `import backend.ats...` works regardless of where pytest is run from.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Must be set before backend.ats.config is imported so a developer's .env can't leak in.
os.environ["DISABLE_DOTENV"] = "1"

from backend.ats.config import Settings  # noqa: E402
from backend.ats.database import build_engine, build_session_factory, init_db  # noqa: E402
from backend.ats.models import Agency, Job  # noqa: E402
from backend.ats.utils.error_handlers import AnalysisDispatchError, NotificationError  # noqa: E402


class RecordingMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str, str]] = []

    def send(self, to_address: str, subject: str, body: str) -> None:
        if self.fail:
            raise NotificationError("SMTP down")
        self.sent.append((to_address, subject, body))


class RecordingAnalysis:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.submitted: list[tuple[int, str, int]] = []

    def submit(self, application_id: int, file_reference: str, job_reference: int) -> None:
        if self.fail:
            raise AnalysisDispatchError("scoring service returned 500")
        self.submitted.append((application_id, file_reference, job_reference))

    def close(self) -> None:
        pass


@pytest.fixture()
def engine(tmp_path: Path):
    engine = build_engine(f"sqlite+pysqlite:///{(tmp_path / 'test.sqlite3').as_posix()}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def analysis() -> RecordingAnalysis:
    return RecordingAnalysis()


@pytest.fixture()
def agency(db_session) -> Agency:
    agency = Agency(company_name="Acme Talent", full_name="Ada Admin", email="ada@acme.example")
    db_session.add(agency)
    db_session.commit()
    db_session.refresh(agency)
    return agency


@pytest.fixture()
def make_job(db_session, agency):
    def _make(title: str = "Backend Engineer", *, status: str = "Open", questions: list[dict] | None = None) -> Job:
        job = Job(
            agency_id=agency.id,
            title=title,
            company_name=agency.company_name,
            department="Engineering",
            experience_level="Mid",
            employment_type="Full-time",
            description="Build and run our APIs.",
            skills=["python", "sql"],
            office_location="Dubai",
            work_place_mode="Hybrid",
            employee_location="UAE",
            base_salary_range=10000,
            upper_salary_range=15000,
            status=status,
            questions=questions or [],
        )
        db_session.add(job)
        db_session.commit()
        db_session.refresh(job)
        return job

    return _make


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+pysqlite:///{(tmp_path / 'api.sqlite3').as_posix()}",
        upload_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
    )


@pytest.fixture()
def app(settings: Settings, mailer: RecordingMailer, analysis: RecordingAnalysis) -> FastAPI:
    """
    FastAPI app wired to a temporary SQLite DB and recording collaborators.
    """
    from backend.ats.main import create_app

    fastapi_app = create_app(settings, mailer=mailer, analysis_client=analysis)
    yield fastapi_app
    fastapi_app.state.engine.dispose()


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def api_db(app: FastAPI):
    """
    Direct SQLAlchemy session bound to the same temporary SQLite DB used by the test app.
    """
    db = app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
