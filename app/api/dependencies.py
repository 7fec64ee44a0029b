# app/api/dependencies.py
from typing import Callable, Type
from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session, sessionmaker

from app.config import Settings
from app.database import get_db

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with"""
    return request.app.state.settings


def get_service(service_class: Type, with_settings: bool = False) -> Callable:
    """Factory function to create service dependencies with DB injection"""
    def _get_service(db: Session = Depends(get_db), settings: Settings = Depends(get_app_settings)):
        if with_settings:
            return service_class(db, settings)
        return service_class(db)
    return _get_service


def get_session_factory(request: Request) -> sessionmaker:
    """Session factory for work that outlives the request, such as background tasks"""
    return request.app.state.session_factory


def no_cache(response: Response) -> None:
    """Chat snapshots must never be served from a cache"""
    for name, value in NO_CACHE_HEADERS.items():
        response.headers[name] = value
