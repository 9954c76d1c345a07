import json
from pathlib import Path

from backend.ats.models import Application, Candidate

PDF_BYTES = b"%PDF-1.4\n%Fake resume\n"


def _create_agency(client, company_name: str = "Acme Talent") -> dict:
    r = client.post(
        "/agencies",
        json={"company_name": company_name, "full_name": "Ada Admin", "email": "ADA@acme.example"},
    )
    assert r.status_code == 201, r.text
    return r.json()["agency"]


def _create_job(client, agency_id: int, **overrides) -> dict:
    body = {
        "agency_id": agency_id,
        "title": "Backend Engineer",
        "department": "Engineering",
        "experience_level": "Mid",
        "employment_type": "Full-time",
        "description": "Build and run our hiring APIs.",
        "skills": ["python", " sql "],
        "office_location": "Dubai",
        "work_place_mode": "hybrid",
        "employee_location": "UAE",
        "base_salary_range": 10000,
        "upper_salary_range": 15000,
        "questions": [
            {"id": "visa", "question": "What is your visa status?", "is_required": True},
            {"id": "notice", "question": "Notice period?", "type": "select", "options": ["0", "30", "60"]},
        ],
    }
    body.update(overrides)
    r = client.post("/jobs", json=body)
    assert r.status_code == 201, r.text
    return r.json()["job"]


def _apply(client, job_id: int, *, email: str = "cand@example.com", answers=None, filename="resume.pdf", content=PDF_BYTES, content_type="application/pdf", **fields):
    data = {
        "full_name": "Casey Candidate",
        "email": email,
        "phone_number": "+971501112222",
        "answers": json.dumps(answers if answers is not None else [{"question_id": "visa", "answer": "Resident"}]),
    }
    data.update(fields)
    return client.post(
        f"/jobs/{job_id}/apply",
        data=data,
        files={"file": (filename, content, content_type)},
    )


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "Backend running"


def test_agency_registration_creates_storage_folder(client, settings):
    agency = _create_agency(client)

    assert agency["email"] == "ada@acme.example"
    assert agency["country"] == "UAE"
    assert agency["storage_folder"] == "acme-talent/"
    assert (Path(settings.upload_dir) / "acme-talent").is_dir()

    dup = client.post(
        "/agencies",
        json={"company_name": "ACME TALENT", "full_name": "Other", "email": "o@acme.example"},
    )
    assert dup.status_code == 409
    assert dup.json()["success"] is False


def test_job_create_validates_and_lists(client):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])

    assert job["company_name"] == "Acme Talent"
    assert job["work_place_mode"] == "Hybrid"
    assert job["status"] == "Open"
    assert job["skills"] == ["python", "sql"]
    assert job["questions"][0]["is_required"] is True

    bad = client.post("/jobs", json={**job, "agency_id": agency["id"], "upper_salary_range": 5})
    assert bad.status_code == 400

    listed = client.get("/jobs", params={"company_name": "acme", "status": "open"}).json()
    assert listed["total"] == 1
    assert [j["id"] for j in listed["jobs"]] == [job["id"]]

    by_agency = client.get(f"/agencies/{agency['id']}/jobs").json()
    assert by_agency["total"] == 1

    assert client.get("/jobs", params={"limit": 0}).status_code == 400
    assert client.get("/jobs/999").status_code == 404


def test_apply_stores_resume_and_commits_application(client, settings, mailer, analysis, api_db):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])

    r = _apply(client, job["id"], email="  Cand@Example.com ", cover_letter="Hello", additional_data=json.dumps({"source": "board"}))
    assert r.status_code == 201, r.text
    app = r.json()["application"]

    assert app["status"] == "submitted"
    assert app["answers"] == [{"question_id": "visa", "question": "What is your visa status?", "answer": "Resident"}]
    assert app["additional_data"] == {"source": "board"}
    assert app["resume_url"].startswith("acme-talent/backend-engineer/")
    assert (Path(settings.upload_dir) / app["resume_url"]).read_bytes() == PDF_BYTES

    candidate = api_db.query(Candidate).one()
    assert candidate.email == "cand@example.com"
    assert candidate.application_ids == [app["id"]]

    # Background tasks run before TestClient returns.
    assert [m[0] for m in mailer.sent] == ["cand@example.com"]
    assert analysis.submitted == [(app["id"], app["resume_url"], job["id"])]


def test_duplicate_application_returns_409_and_keeps_single_record(client, settings, api_db):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])

    assert _apply(client, job["id"]).status_code == 201
    again = _apply(client, job["id"], email="CAND@example.com")

    assert again.status_code == 409
    body = again.json()
    assert body["already_applied"] is True
    assert api_db.query(Application).count() == 1
    stored = list((Path(settings.upload_dir) / "acme-talent" / "backend-engineer").iterdir())
    assert len(stored) == 1


def test_apply_validation_errors(client, api_db):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])

    assert _apply(client, job["id"], email="nope").status_code == 400
    assert _apply(client, job["id"], answers=[]).status_code == 400
    assert _apply(client, job["id"], answers=[{"question_id": "ghost", "answer": "x"}]).status_code == 400
    assert _apply(client, job["id"], filename="resume.txt", content_type="text/plain").status_code == 400
    assert _apply(client, job["id"], additional_data="[1, 2]").status_code == 400
    assert _apply(client, 999).status_code == 404

    assert api_db.query(Candidate).count() == 0


def test_apply_rejects_oversized_resume(client, settings):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])

    r = _apply(client, job["id"], content=b"%PDF" + b"0" * settings.max_resume_bytes)
    assert r.status_code == 413


def test_closed_job_rejects_applications(client):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])

    r = client.patch(f"/jobs/{job['id']}/status", json={"status": "closed"})
    assert r.json()["job"]["status"] == "Closed"

    r = _apply(client, job["id"])
    assert r.status_code == 400
    assert "no longer accepting" in r.json()["error"]


def test_post_commit_failures_are_invisible_to_submitter(client, mailer, analysis, api_db):
    mailer.fail = True
    analysis.fail = True
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])

    r = _apply(client, job["id"])

    assert r.status_code == 201, r.text
    assert api_db.query(Application).one().status == "submitted"


def test_application_review_notes_and_candidate_view(client):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])
    app_id = _apply(client, job["id"]).json()["application"]["id"]

    r = client.patch(f"/applications/{app_id}/status", json={"status": "interviewing"})
    assert r.status_code == 200
    assert r.json()["application"]["status"] == "interviewing"
    assert client.patch(f"/applications/{app_id}/status", json={"status": "lost"}).status_code == 400

    listing = client.get(f"/jobs/{job['id']}/applications", params={"status": "interviewing"}).json()
    assert [a["id"] for a in listing["applications"]] == [app_id]
    assert listing["applications"][0]["candidate"]["email"] == "cand@example.com"

    note = client.post(f"/applications/{app_id}/notes", json={"author": "Ada", "content": "Call on Monday"})
    assert note.status_code == 201
    note_id = note.json()["note"]["id"]
    reply = client.post(f"/notes/{note_id}/replies", json={"author": "Ben", "content": "Booked", "mentions": ["Ada"]})
    assert reply.status_code == 201

    notes = client.get(f"/applications/{app_id}/notes").json()["notes"]
    assert len(notes) == 1
    assert notes[0]["replies"][0]["content"] == "Booked"

    detail = client.get(f"/applications/{app_id}").json()["application"]
    candidate_id = detail["candidate"]["id"]
    cand = client.get(f"/candidates/{candidate_id}").json()
    assert cand["candidate"]["application_ids"] == [app_id]
    assert [a["id"] for a in cand["applications"]] == [app_id]

    assert client.get("/applications/999").status_code == 404
    assert client.post("/notes/999/replies", json={"author": "x", "content": "y"}).status_code == 404


def test_delete_job_cascades_through_api(client, api_db):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])
    app_id = _apply(client, job["id"]).json()["application"]["id"]
    client.post(f"/applications/{app_id}/notes", json={"author": "Ada", "content": "Note"})

    r = client.delete(f"/jobs/{job['id']}")
    assert r.status_code == 200
    assert r.json()["deleted_application_ids"] == [app_id]

    assert api_db.query(Application).count() == 0
    assert api_db.query(Candidate).one().application_ids == []
    assert client.get(f"/jobs/{job['id']}").status_code == 404


def test_non_latin_names_accept_applications(client, settings):
    agency = _create_agency(client, company_name="شركة التوظيف")
    assert agency["storage_folder"] == "شركة-التوظيف/"
    assert (Path(settings.upload_dir) / "شركة-التوظيف").is_dir()

    job = _create_job(client, agency["id"], title="مهندس برمجيات")
    r = _apply(client, job["id"])
    assert r.status_code == 201, r.text
    resume_url = r.json()["application"]["resume_url"]
    assert resume_url.startswith("شركة-التوظيف/مهندس-برمجيات/")
    assert (Path(settings.upload_dir) / resume_url).read_bytes() == PDF_BYTES


def test_title_without_letters_falls_back_to_job_id(client, settings):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"], title="!!")

    r = _apply(client, job["id"])

    assert r.status_code == 201, r.text
    assert r.json()["application"]["resume_url"].startswith(f"acme-talent/job-{job['id']}/")


def test_job_update_merges_and_revalidates(client):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"], hourly_rate=50)

    r = client.patch(
        f"/jobs/{job['id']}",
        json={"title": " Senior Backend Engineer ", "work_place_mode": "remote", "hourly_rate": None},
    )
    assert r.status_code == 200, r.text
    updated = r.json()["job"]
    assert updated["title"] == "Senior Backend Engineer"
    assert updated["work_place_mode"] == "Remote"
    assert updated["hourly_rate"] is None
    assert updated["department"] == "Engineering"
    assert updated["questions"] == job["questions"]

    # Stored base is 10000; an upper bound below it is refused even when sent alone.
    assert client.patch(f"/jobs/{job['id']}", json={"upper_salary_range": 5000}).status_code == 400
    dup_questions = [{"id": "q", "question": "A?"}, {"id": "q", "question": "B?"}]
    assert client.patch(f"/jobs/{job['id']}", json={"questions": dup_questions}).status_code == 400
    assert client.patch(f"/jobs/{job['id']}", json={"work_place_mode": "moon"}).status_code == 400
    assert client.patch("/jobs/999", json={"title": "Nope"}).status_code == 404

    assert client.get(f"/jobs/{job['id']}").json()["job"]["base_salary_range"] == 10000


def test_agency_applications_span_its_jobs_only(client):
    acme = _create_agency(client)
    other = _create_agency(client, company_name="Globex")
    backend = _create_job(client, acme["id"])
    data = _create_job(client, acme["id"], title="Data Engineer")
    foreign = _create_job(client, other["id"])

    a1 = _apply(client, backend["id"]).json()["application"]["id"]
    a2 = _apply(client, data["id"], email="dana@example.com").json()["application"]["id"]
    _apply(client, foreign["id"])
    client.patch(f"/applications/{a2}/status", json={"status": "shortlisted"})

    listing = client.get(f"/agencies/{acme['id']}/applications").json()["applications"]
    assert [a["id"] for a in listing] == [a1, a2]
    assert listing[1]["candidate"]["email"] == "dana@example.com"

    shortlisted = client.get(f"/agencies/{acme['id']}/applications", params={"status": "Shortlisted"}).json()
    assert [a["id"] for a in shortlisted["applications"]] == [a2]
    assert client.get("/agencies/999/applications").status_code == 404


def test_agency_lookup_by_name(client):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])

    r = client.get("/agencies/by-name/ACME talent")
    assert r.status_code == 200
    body = r.json()
    assert body["agency"]["id"] == agency["id"]
    assert [j["id"] for j in body["jobs"]] == [job["id"]]

    assert client.get("/agencies/by-name/Initech").status_code == 404


def test_note_reactions_keep_each_author_once(client):
    agency = _create_agency(client)
    job = _create_job(client, agency["id"])
    app_id = _apply(client, job["id"]).json()["application"]["id"]
    note_id = client.post(f"/applications/{app_id}/notes", json={"author": "Ada", "content": "Hi"}).json()["note"]["id"]

    client.post(f"/notes/{note_id}/reactions", json={"author": "Ada", "reaction": "thumbs_up"})
    client.post(f"/notes/{note_id}/reactions", json={"author": "Ada", "reaction": "thumbs_up"})
    client.post(f"/notes/{note_id}/reactions", json={"author": "Ben", "reaction": "thumbs_up"})
    r = client.post(f"/notes/{note_id}/reactions", json={"author": "Ben", "reaction": "eyes"})

    assert r.status_code == 200
    assert r.json()["note"]["reactions"] == {"thumbs_up": ["Ada", "Ben"], "eyes": ["Ben"]}

    notes = client.get(f"/applications/{app_id}/notes").json()["notes"]
    assert notes[0]["reactions"]["thumbs_up"] == ["Ada", "Ben"]
    assert client.post("/notes/999/reactions", json={"author": "Ada", "reaction": "eyes"}).status_code == 404
