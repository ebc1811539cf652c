"""Entrypoint for running the preferences service with uvicorn."""

from .app import app, get_app

__all__ = ["app", "get_app"]


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "services.preferences.main:app",
        host="127.0.0.1",
        port=8010,
        reload=True,
    )
