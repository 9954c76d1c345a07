"""Repo-root Uvicorn entrypoint.

Allows running the backend from the repo root:

    uvicorn app.main:app --reload

Builds the FastAPI app from `backend/ats/main.py` with settings read from the environment.
"""

from backend.ats.main import create_app

app = create_app()
