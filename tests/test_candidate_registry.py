import pytest
from sqlalchemy.exc import OperationalError

from backend.ats.models import Candidate
from backend.ats.services import candidates as registry
from backend.ats.services.candidates import CandidateProfile, find_or_create_candidate, get_candidate
from backend.ats.utils.error_handlers import DuplicateKeyError, NotFoundError, StorageError

PROFILE = CandidateProfile(full_name="Bob Builder", phone_number="+44123456", resume_url="r/1.pdf")


def test_creates_candidate_with_empty_back_references(db_session):
    candidate = find_or_create_candidate(db_session, email="bob@example.com", profile=PROFILE)
    db_session.commit()

    assert candidate.id is not None
    assert candidate.full_name == "Bob Builder"
    assert candidate.resume_url == "r/1.pdf"
    assert candidate.application_ids == []


def test_existing_candidate_is_returned_unchanged(db_session):
    first = find_or_create_candidate(db_session, email="bob@example.com", profile=PROFILE)
    db_session.commit()

    again = find_or_create_candidate(
        db_session,
        email="bob@example.com",
        profile=CandidateProfile(full_name="Robert", phone_number="000", resume_url="r/2.pdf"),
    )

    assert again.id == first.id
    assert again.full_name == "Bob Builder"
    assert again.resume_url == "r/1.pdf"
    assert db_session.query(Candidate).count() == 1


def test_insert_is_left_to_the_caller_transaction(db_session):
    find_or_create_candidate(db_session, email="bob@example.com", profile=PROFILE)
    db_session.rollback()

    assert db_session.query(Candidate).count() == 0


def test_racing_insert_raises_duplicate_key(db_session, monkeypatch):
    find_or_create_candidate(db_session, email="bob@example.com", profile=PROFILE)
    db_session.commit()

    monkeypatch.setattr(registry, "find_candidate_by_email", lambda db, email: None)
    with pytest.raises(DuplicateKeyError) as exc:
        find_or_create_candidate(db_session, email="bob@example.com", profile=PROFILE)
    db_session.rollback()

    assert isinstance(exc.value, StorageError)
    assert exc.value.details == {"email": "bob@example.com"}


def test_unreachable_database_raises_storage_error(db_session, monkeypatch):
    def _down(db, email):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(registry, "find_candidate_by_email", _down)
    with pytest.raises(StorageError):
        find_or_create_candidate(db_session, email="bob@example.com", profile=PROFILE)


def test_get_candidate_not_found(db_session):
    with pytest.raises(NotFoundError):
        get_candidate(db_session, 42)
