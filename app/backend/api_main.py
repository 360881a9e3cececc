from app.backend.api.app import app

# uvicorn app.backend.api_main:app --reload
__all__ = ["app"]
