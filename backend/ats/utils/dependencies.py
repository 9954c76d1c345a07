from fastapi import Request

from ..config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request):
    return request.app.state.storage


def get_mailer(request: Request):
    return request.app.state.mailer


def get_analysis_client(request: Request):
    return request.app.state.analysis_client
